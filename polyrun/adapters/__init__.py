"""
Adapters — the boundary between the engine and the operating system.
"""
