"""Game domain services: board, deck, teams, registry and the turn engine.

This package contains the core game mechanics that socket handlers and
HTTP routes call into, keeping transport concerns separated from the
session state machine.
"""
