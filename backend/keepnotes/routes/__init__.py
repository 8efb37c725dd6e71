# Routes package init
"""
KeepNotes Backend — API Routes Package
========================================

Route Inventory:
    - health.py:       GET    /api/health
    - notes.py:        GET    /api/notes             (search / label filter)
                       POST   /api/notes             (multipart create)
                       PUT    /api/notes/{id}        (JSON patch)
                       DELETE /api/notes/{id}
    - attachments.py:  DELETE /api/attachments/{id}
    - uploads.py:      GET    /uploads/{filename}

Routes stay THIN: extract request data, call a service, return a model.
Errors are raised as KeepNotesError subclasses and formatted by the global
handlers in main.py.
"""
