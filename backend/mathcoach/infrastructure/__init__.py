"""Infrastructure — database engine, job queue, model client, blob and identity adapters.

Invariants:
    - Only errors and id types are imported from core/; no tutoring rules live here
    - Every outbound call is bounded by a timeout and mapped to CollaboratorError
"""
