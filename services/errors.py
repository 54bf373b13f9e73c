# services/errors.py
"""Exceptions raised by the ledger services."""


class LedgerError(Exception):
     """Base class for ledger failures."""


class InvalidTransactionInput(LedgerError, ValueError):
     """The transaction intent was rejected before any hashing or mining."""


class ChainWriteError(LedgerError):
     """
     The serialized read-tail/append step failed. Nothing was recorded and
     the whole submission may be retried.
     """


class AppendConflict(ChainWriteError):
     """Another writer extended the chain first; the tail must be re-read."""


class AuditWriteError(LedgerError):
     """An audit-trail entry could not be written."""
