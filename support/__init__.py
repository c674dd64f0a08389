"""support/ -- One support thread per student, answered by administrators.

Layer rule: support/ imports only stdlib + third-party libraries + core/.
Who may read or write a thread is decided in api/ through the Auth and
Role Gates; the store only records messages.
"""
