"""Clients adapting concrete database drivers to the rowcast protocols."""

from rowcast.adapters.dbapi import DBAPIClient, DBAPICursor, MutationResult

__all__ = ("DBAPIClient", "DBAPICursor", "MutationResult")
