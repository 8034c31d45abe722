"""Core — pure tutoring rules, statistics and token helpers.

Invariants:
    - Nothing here imports from services/, api/, infrastructure/, models/ or db/
    - Functions take plain values and return plain values; no IO, no clock reads
      except time_utils.utc_now

Design Decisions:
    - Rules (round flow, scoring, streaks) live here so services stay thin
      orchestration over the database and collaborators
"""
