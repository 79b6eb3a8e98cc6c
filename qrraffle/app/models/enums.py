from enum import Enum


class RaffleStatus(str, Enum):
    active = "active"
    closed = "closed"
    drawn = "drawn"
