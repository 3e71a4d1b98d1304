"""
Optional plugins. A plugin is a callable invoked once with the store.
"""
