"""
Per-operation context handed to every service call.
"""

from dataclasses import dataclass

from sqlmodel import Session

from assetcover.gateway import Gateway


@dataclass
class TxContext:
    """Session, verified caller, current height and collaborators of one call."""
    session: Session
    caller: str
    height: int
    gateway: Gateway
