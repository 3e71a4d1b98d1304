"""
Core package: the store, its module tree, routing and validation.

Architecture:
- ModuleTree owns the declared modules and their state
- Store installs the tree into flat registries and routes commit/dispatch
- LocalContext gives each module a namespaced view of the store
"""
