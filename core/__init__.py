"""core/ -- Kernel shared by every rolegate package: configuration, errors, field rules.

Layer rule: core/ imports only stdlib + third-party libraries.
It does NOT import from identity/.
"""
