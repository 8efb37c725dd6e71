"""Storage seam for the notes document (see note_repository.py)."""
