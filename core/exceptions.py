"""
Custom exceptions

All business-rule failures live here so the API layer can map them in one place.
Every one of them aborts the enclosing transaction.
"""


class AmericanoException(Exception):
    """Base class for all engine errors"""
    pass


# ============ Lookup errors ============

class NotFound(AmericanoException):
    """A referenced tournament, match, enrollment or player does not exist"""
    pass


class TournamentNotFound(NotFound):
    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament {tournament_id} not found")


class MatchNotFound(NotFound):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class EnrollmentNotFound(NotFound):
    def __init__(self, player_id, tournament_id):
        self.player_id = player_id
        self.tournament_id = tournament_id
        super().__init__(f"Player {player_id} is not enrolled in tournament {tournament_id}")


class PlayerNotFound(NotFound):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class PlayerNotInMatch(NotFound):
    def __init__(self, player_id, match_id):
        self.player_id = player_id
        self.match_id = match_id
        super().__init__(f"Player {player_id} does not play in match {match_id}")


# ============ Scheduling errors ============

class InsufficientPlayers(AmericanoException):
    """Fewer than 4 eligible players for the requested generation"""
    pass


class BusyCourts(AmericanoException):
    """Every court holds an unscored match; retry with force=True to queue"""
    def __init__(self, courts_available):
        self.courts_available = courts_available
        super().__init__(f"All {courts_available} courts are busy")


# ============ Match mutation errors ============

class AlreadyScored(AmericanoException):
    """The match (or schedule) already has recorded results"""
    pass


class DuplicatePlayer(AmericanoException):
    def __init__(self, player_id, match_id):
        self.player_id = player_id
        self.match_id = match_id
        super().__init__(f"Player {player_id} is already in match {match_id}")


class InvalidScore(AmericanoException):
    """Raw score violates the tournament modality"""
    pass


# ============ Roster errors ============

class RosterLocked(AmericanoException):
    """A player with scheduled matches cannot leave the roster"""
    pass
