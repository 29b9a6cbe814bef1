"""Core (UI-agnostic) pod dashboard logic.

This package contains:
- data loading (XLSX / CSV -> typed rows)
- normalization into decks, players and sessions
- filter normalization
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- best-effort commander art lookups
"""
