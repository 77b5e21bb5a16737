# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Line protocol

Request:  <Verb> <CorrelationId> [arg1] [arg2] ...
Response: <Verb> <CorrelationId> <payload>

Fields are separated by single spaces. One leading and one trailing space
are ignored; any other empty field is kept, so a doubled space adds an
empty argument.
The payload of a response may be empty, which leaves a trailing space.
"""

from dataclasses import dataclass
from typing import Tuple

from .exceptions import MessageTooShortError

DELIMITER = " "

TRUE = "true"
FALSE = "false"
EMPTY = ""


@dataclass(frozen=True)
class Command:
    """One parsed request line"""

    verb: str
    correlation_id: str
    arguments: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Response:
    """One response line"""

    verb: str
    correlation_id: str
    payload: str = EMPTY

    def to_line(self) -> str:
        return f"{self.verb}{DELIMITER}{self.correlation_id}{DELIMITER}{self.payload}"


def split_line(line: str) -> Tuple[str, ...]:
    tokens = line.split(DELIMITER)
    if tokens and tokens[0] == EMPTY:
        tokens = tokens[1:]
    if tokens and tokens[-1] == EMPTY:
        tokens = tokens[:-1]
    return tuple(tokens)


def parse_command(line: str) -> Command:
    """
    Parse a request line.

    Raises:
        MessageTooShortError: fewer than two tokens
    """
    tokens = split_line(line)
    if len(tokens) < 2:
        raise MessageTooShortError("Message too short", line=line)
    verb, correlation_id, *arguments = tokens
    return Command(verb=verb, correlation_id=correlation_id, arguments=tuple(arguments))

