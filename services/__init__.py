"""
Service layer

Calculation and read-only helpers; nothing here commits:
- scoring_service: raw result -> ranking points
- standings_service: Enrollment.current_score accumulator
- history_service: partner / opponent history
- selection_service: rotation fairness
- pairing_service: lineup optimizer
- schedule_state_service: derived schedule state
"""
