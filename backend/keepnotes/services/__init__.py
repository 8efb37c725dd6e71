# Services package init
"""
KeepNotes Backend — Services Layer
====================================

Service Inventory:
    - labels.py:        normalize_labels() and the LabelInput shapes
    - multipart.py:     MultipartDecoder, raw body → fields + stored files
    - file_service.py:  FileService, the upload directory
    - note_service.py:  NoteService, note/attachment operations over a
                        NoteRepository

Services never see HTTP objects, so they are tested without a server.
"""
