"""tasks/ -- Task records and the owner-scoped access layer in front of them.

Layer rule: tasks/ imports from core/ and auth.models only.
It does NOT import from api/.
"""
