"""Schemas — request/response contracts and collaborator output validation.

Invariants:
    - API input is validated here before any service runs
    - Collaborator output (analysis.py) is parsed into these models, never trusted raw
"""
