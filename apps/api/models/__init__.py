"""
Modelos SQLAlchemy. Importar aqui para que o Alembic os detecte no autogenerate.
"""

from models.account import Account
from models.transaction import Transaction

__all__ = [
    "Account",
    "Transaction",
]
