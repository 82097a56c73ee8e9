# SPDX-License-Identifier: MIT
# SPDX-FileCopyrightText: 2024 Jason Lynch <jason@aexoden.com>
"""Messages exchanged between the scheduler and its workers."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Message(BaseModel):
    """Base class for all messages. Every message is addressed to a single job."""

    model_config = ConfigDict(frozen=True)

    job_id: int = Field(description="Identifier of the job the message belongs to")


class GenerateAndFactor(Message):
    """Request to generate a random integer of the given byte length and factor it."""

    kind: Literal["generate_and_factor"] = "generate_and_factor"
    length: int = Field(ge=1, description="Number of random bytes in the generated integer")


class ValueCreated(Message):
    """The worker has generated the integer it is about to factor."""

    kind: Literal["value_created"] = "value_created"
    value: str = Field(description="The generated integer in base 10")


class FactorFound(Message):
    """A prime factor and its full multiplicity have been divided out."""

    kind: Literal["factor_found"] = "factor_found"
    base: str = Field(description="The factor in base 10")
    exponent: str = Field(description="The multiplicity of the factor in base 10")


class ProgressUpdate(Message):
    """Estimated progress through the search horizon."""

    kind: Literal["progress_update"] = "progress_update"
    percentage: float = Field(ge=0.0, description="Percentage of the search horizon scanned")


class Complete(Message):
    """Terminal event of a request. A non-empty error marks a failed computation."""

    kind: Literal["complete"] = "complete"
    error: str | None = Field(default=None, description="Failure description, if the computation failed")


WorkerEvent = Annotated[ValueCreated | FactorFound | ProgressUpdate | Complete, Field(discriminator="kind")]

_request_adapter: TypeAdapter[GenerateAndFactor] = TypeAdapter(GenerateAndFactor)
_event_adapter: TypeAdapter[WorkerEvent] = TypeAdapter(WorkerEvent)


def encode_message(message: Message) -> bytes:
    """Serialize a message for the wire.

    Returns:
        bytes: The JSON encoded message.
    """
    return message.model_dump_json().encode("utf-8")


def decode_request(data: bytes) -> GenerateAndFactor:
    """Deserialize a request received by a worker.

    Returns:
        GenerateAndFactor: The decoded request.
    """
    return _request_adapter.validate_json(data)


def decode_event(data: bytes) -> WorkerEvent:
    """Deserialize an event received from a worker.

    Returns:
        WorkerEvent: The decoded event.
    """
    return _event_adapter.validate_json(data)
