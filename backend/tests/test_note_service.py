"""
KeepNotes Backend — Note Service Unit Tests
=============================================

What:  list / create / update / delete / delete_attachment against a real
       JSON repository and upload directory under tmp_path.

What we test:
    ✅ Round-trip: create then list returns the same note
    ✅ Search across title, content and labels, case-insensitive
    ✅ Label filter, AND-ed with search
    ✅ Sort by updatedAt descending, stable on ties
    ✅ Partial updates, coercion, explicit null vs absent
    ✅ NotFound on unknown ids; delete is not reversible
    ✅ Attachment files removed with their records
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from keepnotes.exceptions import NotFoundError
from keepnotes.schemas.note import NotePatch


async def create(note_service, **fields):
    return await note_service.create_note({k: str(v) for k, v in fields.items()})


class TestCreateAndList:

    @pytest.mark.asyncio
    async def test_create_defaults(self, note_service):
        note = await note_service.create_note({})

        assert note.title == ""
        assert note.content == ""
        assert note.color == "#fff9c4"
        assert note.pinned is False
        assert note.archived is False
        assert note.labels == []
        assert note.attachments == []
        assert note.created_at == note.updated_at

    @pytest.mark.asyncio
    async def test_create_from_form_fields(self, note_service):
        note = await create(
            note_service,
            title="Team update",
            content="Finish AWS rollout",
            labels="ops,release",
            pinned="true",
            color="#ccff90",
        )

        assert note.title == "Team update"
        assert note.pinned is True
        assert note.labels == ["ops", "release"]
        assert note.color == "#ccff90"

    @pytest.mark.asyncio
    async def test_pinned_false_text(self, note_service):
        note = await create(note_service, pinned="false")
        assert note.pinned is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", " On "])
    async def test_pinned_flag_words(self, note_service, raw):
        note = await create(note_service, pinned=raw, archived=raw)
        assert note.pinned is True
        assert note.archived is True

    @pytest.mark.asyncio
    async def test_update_false_text_unpins(self, note_service):
        note = await create(note_service, pinned="true")
        updated = await note_service.update_note(
            note.id, NotePatch.model_validate({"pinned": "false"})
        )
        assert updated.pinned is False

    @pytest.mark.asyncio
    async def test_empty_color_uses_default(self, note_service):
        note = await create(note_service, color="")
        assert note.color == "#fff9c4"

    @pytest.mark.asyncio
    async def test_round_trip(self, note_service):
        created = await create(note_service, title="T", content="C", labels='["a","b"]')

        notes = await note_service.list_notes()

        assert notes == [created]

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, note_service):
        first = await create(note_service, title="a")
        second = await create(note_service, title="a")
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_create_with_files(self, note_service, file_service):
        attachment = await file_service.store("a.txt", b"abc", "text/plain")

        note = await note_service.create_note({"title": "with file"}, [attachment])

        assert note.attachments == [attachment]
        listed = await note_service.list_notes()
        assert listed[0].attachments[0].url == attachment.url

    @pytest.mark.asyncio
    async def test_failed_persist_removes_uploads(self, note_service, file_service, repository):
        attachment = await file_service.store("a.txt", b"abc")
        path = file_service.path_for_url(attachment.url)

        with patch.object(repository, "_write", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                await note_service.create_note({}, [attachment])

        assert not path.exists()


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, note_service):
        await create(note_service, title="Team update", content="Finish AWS rollout")
        await create(note_service, title="Groceries", content="milk")

        for term in ("rollout", "ROLLOUT", "aws ROLL"):
            results = await note_service.list_notes(search=term)
            assert [n.title for n in results] == ["Team update"]

    @pytest.mark.asyncio
    async def test_search_matches_labels(self, note_service):
        await create(note_service, title="a", labels="Release")
        results = await note_service.list_notes(search="release")
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_label_filter_exact_match(self, note_service):
        await create(note_service, title="a", labels="ops,release")
        await create(note_service, title="b", labels="operations")

        results = await note_service.list_notes(label="OPS")

        assert [n.title for n in results] == ["a"]

    @pytest.mark.asyncio
    async def test_filters_are_anded(self, note_service):
        await create(note_service, title="deploy", labels="ops")
        await create(note_service, title="deploy", labels="home")
        await create(note_service, title="other", labels="ops")

        results = await note_service.list_notes(search="deploy", label="ops")

        assert len(results) == 1
        assert results[0].labels == ["ops"]

    @pytest.mark.asyncio
    async def test_empty_filters_return_everything(self, note_service):
        await create(note_service, title="a")
        await create(note_service, title="b")
        assert len(await note_service.list_notes(search="", label="")) == 2


class TestSortOrder:

    @pytest.mark.asyncio
    async def test_most_recently_updated_first(self, note_service, repository):
        older = await create(note_service, title="older")
        newer = await create(note_service, title="newer")
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with repository.transaction() as document:
            document.find_note(older.id).updated_at = base
            document.find_note(newer.id).updated_at = base + timedelta(seconds=1)

        titles = [n.title for n in await note_service.list_notes()]
        assert titles == ["newer", "older"]

        await note_service.update_note(older.id, NotePatch(content="touched"))
        titles = [n.title for n in await note_service.list_notes()]
        assert titles == ["older", "newer"]

    @pytest.mark.asyncio
    async def test_ties_keep_stored_order(self, note_service, repository):
        for title in ("first", "second", "third"):
            await create(note_service, title=title)
        same = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with repository.transaction() as document:
            for note in document.notes:
                note.updated_at = same

        titles = [n.title for n in await note_service.list_notes()]
        assert titles == ["first", "second", "third"]


class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_fields(self, note_service):
        note = await create(note_service, title="T", content="C", labels="a")

        updated = await note_service.update_note(note.id, NotePatch(title="New"))

        assert updated.title == "New"
        assert updated.content == "C"
        assert updated.labels == ["a"]
        assert updated.created_at == note.created_at
        assert updated.updated_at >= note.updated_at

    @pytest.mark.asyncio
    async def test_update_coerces_values(self, note_service):
        note = await create(note_service)
        patch_ = NotePatch.model_validate(
            {"title": 42, "pinned": 1, "archived": "true", "labels": " x , y ", "color": None}
        )

        updated = await note_service.update_note(note.id, patch_)

        assert updated.title == "42"
        assert updated.pinned is True
        assert updated.archived is True
        assert updated.labels == ["x", "y"]
        assert updated.color == ""

    @pytest.mark.asyncio
    async def test_explicit_null_differs_from_absent(self, note_service):
        note = await create(note_service, title="T", labels="a")

        updated = await note_service.update_note(
            note.id, NotePatch.model_validate({"labels": None})
        )

        assert updated.labels == []
        assert updated.title == "T"

    @pytest.mark.asyncio
    async def test_update_is_persisted(self, note_service):
        note = await create(note_service)
        await note_service.update_note(note.id, NotePatch(pinned=True))

        listed = await note_service.list_notes()
        assert listed[0].pinned is True

    @pytest.mark.asyncio
    async def test_update_unknown_note(self, note_service):
        with pytest.raises(NotFoundError) as exc_info:
            await note_service.update_note("missing", NotePatch(title="x"))
        assert exc_info.value.message == "Note not found"


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_twice(self, note_service):
        note = await create(note_service, title="gone")

        removed = await note_service.delete_note(note.id)
        assert removed.id == note.id

        with pytest.raises(NotFoundError):
            await note_service.delete_note(note.id)
        assert await note_service.list_notes() == []

    @pytest.mark.asyncio
    async def test_delete_removes_attachment_files(self, note_service, file_service):
        first = await file_service.store("a.txt", b"1")
        second = await file_service.store("b.txt", b"2")
        note = await note_service.create_note({}, [first, second])
        paths = [file_service.path_for_url(a.url) for a in (first, second)]

        await note_service.delete_note(note.id)

        assert not any(p.exists() for p in paths)

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_files(self, note_service, file_service):
        attachment = await file_service.store("a.txt", b"1")
        note = await note_service.create_note({}, [attachment])
        file_service.path_for_url(attachment.url).unlink()

        await note_service.delete_note(note.id)

        assert await note_service.list_notes() == []


class TestDeleteAttachment:

    @pytest.mark.asyncio
    async def test_removes_record_and_file(self, note_service, file_service, repository):
        keep = await file_service.store("keep.txt", b"k")
        drop = await file_service.store("drop.txt", b"d")
        note = await note_service.create_note({}, [keep, drop])
        before = note.updated_at

        removed = await note_service.delete_attachment(drop.id)

        assert removed.id == drop.id
        assert not file_service.path_for_url(drop.url).exists()
        assert file_service.path_for_url(keep.url).exists()
        stored = (await repository.read()).find_note(note.id)
        assert [a.id for a in stored.attachments] == [keep.id]
        assert stored.updated_at >= before

    @pytest.mark.asyncio
    async def test_unknown_attachment(self, note_service):
        with pytest.raises(NotFoundError) as exc_info:
            await note_service.delete_attachment("missing")
        assert exc_info.value.message == "Attachment not found"
