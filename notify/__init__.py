"""notify/ -- Outbound e-mail for InternHub.

Layer rule: notify/ imports only stdlib + core/. Flows in auth/ call it;
it never calls back into auth/ or api/.
"""
