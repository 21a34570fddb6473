"""blog/ -- Post persistence and cover image storage for Inkpost.

Layer rule: blog/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or auth/. Ownership checks happen in api/,
which joins the two.
"""
