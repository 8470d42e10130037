"""Base provider interface — Abstract classes, registry and exceptions for text source connectors.

Import from the submodules directly (``lectern.providers.base.provider``,
``lectern.providers.base.registry``); the models package depends on
``exceptions`` and must be importable without pulling in the registry.
"""
