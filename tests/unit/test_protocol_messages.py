# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from protocol.messages import (
    ErrorMessage,
    MalformedFrame,
    MissingField,
    PingMessage,
    ProtocolError,
    StatusMessage,
    UnknownMessageType,
    encode_pong,
    parse_inbound_frame,
)


# ---------------------------------------------------------------------
# Recognized messages
# ---------------------------------------------------------------------

def test_status_message_keeps_transfer_payload():
    transfer = {"status": "COMPLETED", "amount": 1000, "extra": {"nested": [1, 2]}}

    msg = parse_inbound_frame(json.dumps({"type": "status", "transfer": transfer}))

    assert isinstance(msg, StatusMessage)
    assert msg.transfer == transfer
    assert msg.status == "COMPLETED"


def test_error_message():
    msg = parse_inbound_frame('{"type": "error", "message": "signature expired"}')

    assert msg == ErrorMessage(message="signature expired")


def test_ping_message():
    assert isinstance(parse_inbound_frame('{"type": "ping"}'), PingMessage)


def test_bytes_frame_is_decoded_as_utf8():
    msg = parse_inbound_frame(b'{"type": "ping"}')

    assert isinstance(msg, PingMessage)


# ---------------------------------------------------------------------
# Rejected frames
# ---------------------------------------------------------------------

@pytest.mark.parametrize("raw", ["not-json", "", "[]", "42", '"ping"', b"\xff\xfe"])
def test_non_object_frames_are_malformed(raw):
    with pytest.raises(MalformedFrame):
        parse_inbound_frame(raw)


def test_deeply_nested_frame_is_malformed():
    with pytest.raises(MalformedFrame):
        parse_inbound_frame("[" * 200_000)


def test_oversized_number_literal_is_a_protocol_error():
    # Rejected by the int-digit limit where the interpreter has one,
    # otherwise by the missing transfer object.
    with pytest.raises(ProtocolError):
        parse_inbound_frame('{"type": "status", "n": ' + "1" * 5000 + "}")


@pytest.mark.parametrize("raw", ['{"type": "bogus"}', '{"kind": "status"}', '{"type": null}'])
def test_unknown_or_missing_type(raw):
    with pytest.raises(UnknownMessageType):
        parse_inbound_frame(raw)


@pytest.mark.parametrize(
    "raw",
    [
        '{"type": "status"}',
        '{"type": "status", "transfer": "COMPLETED"}',
        '{"type": "status", "transfer": {"status": 3}}',
        '{"type": "error"}',
        '{"type": "error", "message": ""}',
        '{"type": "error", "message": {"code": 1}}',
    ],
)
def test_recognized_type_with_missing_field(raw):
    with pytest.raises(MissingField):
        parse_inbound_frame(raw)


# ---------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------

def test_pong_frame():
    assert json.loads(encode_pong()) == {"type": "pong"}
