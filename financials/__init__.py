"""Financial period consolidation core (UI-agnostic).

This package contains:
- the branch / period data model and lookup helpers
- the consolidation engine (period type and window reconfiguration)
- the edit controller for single-cell updates
- the persistence gateway and data source collaborators
- the state container that wires them together
"""
