from src.infrastructure.multisig.in_memory import InMemoryMultisigRepository
from src.infrastructure.multisig.postgres import PostgresMultisigRepository
from src.infrastructure.multisig.sqlite import SqliteMultisigRepository

__all__ = [
    "InMemoryMultisigRepository",
    "PostgresMultisigRepository",
    "SqliteMultisigRepository",
]
