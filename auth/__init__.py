"""auth/ -- Authentication and authorization package for InternHub.

Layer rule: auth/ imports stdlib, third-party libraries, core/ and notify/.
It does NOT import from api/ or portal/.
api/ imports from auth/, not the other way around.
"""
