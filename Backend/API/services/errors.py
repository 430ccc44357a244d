class FairnessError(Exception):
    """Base error for the plinko fairness engine."""


class HashInputError(FairnessError, TypeError):
    pass


class PayoutConfigError(FairnessError, ValueError):
    pass


class UnsupportedBoardError(FairnessError, KeyError):
    def __init__(self, rows: int, risk: str):
        self.rows = rows
        self.risk = risk
        super().__init__(f"no payout table for rows={rows} risk={risk}")

    def __str__(self):
        return self.args[0]


class PersistenceError(FairnessError):
    pass


class StaleStateError(FairnessError):
    pass


class SessionNotFoundError(FairnessError, KeyError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"unknown session {session_id}")

    def __str__(self):
        return self.args[0]
