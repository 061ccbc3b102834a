"""
Core business layer

Everything that owns a transaction lives here:
- ScheduleManager: round / match generation, scoring, swaps, deletions
- TournamentManager: tournament lifecycle and read models
- Locks: concurrency helpers
- Exceptions: engine error kinds
"""
