"""
Type definitions used across layers
"""

from enum import StrEnum


class SessionState(StrEnum):
    LOBBY = "lobby"
    STARTED = "started"
    FINISHED = "finished"


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"
