"""Application layer.

Wires the core coordinator to segment definitions and to the front-end hooks.

Rule of thumb:
UI -> application (hooks, container) -> core (jobs, state, events)
"""
