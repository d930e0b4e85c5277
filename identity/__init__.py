"""identity/ -- Accounts, roles and permissions for rolegate.

Layer rule: identity/ imports from core/ and third-party libraries only.
Upper layers (HTTP, RPC, CLI) import from identity/, not the other way around.
"""
