"""Persistence module - plan and event log storage."""

from quitpace.persistence.gateway import PersistenceGateway, SqlPersistenceGateway

__all__ = ["PersistenceGateway", "SqlPersistenceGateway"]
