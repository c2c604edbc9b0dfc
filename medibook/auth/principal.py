from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    PROVIDER = 'provider'
    REQUESTER = 'requester'


@dataclass(frozen=True)
class Principal:
    """An authenticated actor as described by the identity provider."""

    id: int
    role: Role
