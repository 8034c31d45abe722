"""Services Layer — session lifecycle, dialogue, reports, stats and collaborators.

Invariants:
    - Services receive an AsyncSession and a RequestContext; no global user state
    - Side effects off the request path go through the background job queue

Design Decisions:
    - One service per component for locality (ADR: ExMA no god objects)
"""
