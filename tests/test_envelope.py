"""Tests for envelope composition, canonicalization and reply parsing."""

import base64
import json

import pytest

from colonies.canonicaljson import canonical_message, canonicalize
from colonies.crypto import derive_identity, generate_key, recover_identity
from colonies.envelope import (
    build_reply,
    build_rpcmsg,
    compose,
    decode_payload,
    open_rpcmsg,
    parse_failure,
    parse_reply,
)
from colonies.errors import CanonicalizationError, EnvelopeError


class TestCanonicalization:
    def test_object_member_ordering(self):
        assert canonicalize({"b": 2, "a": 1}) == b'{"a":1,"b":2}'

    def test_whitespace_removal(self):
        result = canonicalize({"z": [3, 2, 1], "a": {"y": True, "x": False}})
        assert result == b'{"a":{"x":false,"y":true},"z":[3,2,1]}'

    def test_non_dict_rejected(self):
        with pytest.raises(CanonicalizationError, match="JSON object"):
            canonicalize([1, 2])

    def test_message_carries_msgtype(self):
        assert canonical_message("getcolonymsg", {"colonyname": "dev"}) == (
            b'{"colonyname":"dev","msgtype":"getcolonymsg"}'
        )

    def test_non_finite_number_names_its_field(self):
        with pytest.raises(CanonicalizationError, match=r"message\.spec\.args\[1\]"):
            canonicalize({"spec": {"args": [1.0, float("nan")]}})

    def test_compose_rejects_infinite_timeout(self):
        with pytest.raises(CanonicalizationError, match="timeout"):
            compose("assignprocessmsg", {"timeout": float("inf")}, generate_key())


class TestCompose:
    def test_wire_body_fields(self):
        key = generate_key()
        body = json.loads(compose("getcolonymsg", {"colonyname": "dev"}, key))
        assert set(body) == {"signature", "payloadtype", "payload"}
        assert body["payloadtype"] == "getcolonymsg"
        assert len(body["signature"]) == 130

    def test_payload_carries_msgtype(self):
        msg = build_rpcmsg("getcolonymsg", {"colonyname": "dev"}, generate_key())
        inner = json.loads(base64.b64decode(msg["payload"]))
        assert inner == {"colonyname": "dev", "msgtype": "getcolonymsg"}

    def test_payload_is_canonical_json(self):
        msg = build_rpcmsg("m", {"b": 1, "a": {"d": 2, "c": 3}}, generate_key())
        assert base64.b64decode(msg["payload"]) == (
            b'{"a":{"c":3,"d":2},"b":1,"msgtype":"m"}'
        )

    def test_signature_covers_base64_text(self):
        key = generate_key()
        msg = build_rpcmsg("addcolonymsg", {"colony": {"name": "x"}}, key)
        assert recover_identity(msg["payload"], msg["signature"]) == derive_identity(key)

    def test_does_not_mutate_caller_payload(self):
        payload = {"colonyname": "dev"}
        build_rpcmsg("getcolonymsg", payload, generate_key())
        assert payload == {"colonyname": "dev"}

    def test_matching_msgtype_accepted(self):
        msg = build_rpcmsg("m", {"msgtype": "m"}, generate_key())
        assert msg["payloadtype"] == "m"

    def test_conflicting_msgtype_rejected(self):
        with pytest.raises(EnvelopeError, match="does not match"):
            build_rpcmsg("getcolonymsg", {"msgtype": "other"}, generate_key())

    def test_empty_payload_type_rejected(self):
        with pytest.raises(EnvelopeError, match="non-empty"):
            build_rpcmsg("", {}, generate_key())

    def test_compose_is_deterministic(self):
        key = generate_key()
        assert compose("m", {"x": 1}, key) == compose("m", {"x": 1}, key)


class TestOpenRPCMsg:
    def test_round_trip(self):
        key = generate_key()
        value = {"spec": {"funcname": "echo", "args": ["hi"]}, "n": 3}
        payload_type, payload, signer = open_rpcmsg(compose("submitfuncspecmsg", value, key))
        assert payload_type == "submitfuncspecmsg"
        assert payload.pop("msgtype") == "submitfuncspecmsg"
        assert payload == value
        assert signer == derive_identity(key)

    def test_tampered_payload_changes_signer(self):
        key = generate_key()
        body = json.loads(compose("getcolonymsg", {"colonyname": "dev"}, key))
        # Swap one base64 character for another that keeps the JSON valid:
        # re-encode a different colony name without re-signing.
        forged = base64.b64encode(
            b'{"colonyname":"dew","msgtype":"getcolonymsg"}'
        ).decode("ascii")
        assert sum(a != b for a, b in zip(forged, body["payload"])) == 1
        body["payload"] = forged
        _, payload, signer = open_rpcmsg(json.dumps(body))
        assert payload["colonyname"] == "dew"
        assert signer != derive_identity(key)

    def test_single_char_mutation_changes_recovered_identity(self):
        key = generate_key()
        msg = build_rpcmsg("getcolonymsg", {"colonyname": "dev"}, key)
        text = msg["payload"]
        mutated = ("B" if text[0] != "B" else "C") + text[1:]
        assert recover_identity(mutated, msg["signature"]) != derive_identity(key)

    def test_msgtype_mismatch_rejected(self):
        body = json.loads(compose("getcolonymsg", {}, generate_key()))
        body["payloadtype"] = "removecolonymsg"
        with pytest.raises(EnvelopeError, match="does not match"):
            open_rpcmsg(json.dumps(body))

    def test_missing_fields_rejected(self):
        with pytest.raises(EnvelopeError, match="Missing"):
            open_rpcmsg('{"payload": ""}')

    def test_not_json_rejected(self):
        with pytest.raises(EnvelopeError, match="not valid JSON"):
            open_rpcmsg("not json")


class TestReplies:
    def test_parse_reply(self):
        reply = parse_reply(build_reply("getcolonymsg", {"name": "dev"}))
        assert reply["payloadtype"] == "getcolonymsg"
        assert reply["error"] is False
        assert json.loads(decode_payload(reply["payload"])) == {"name": "dev"}

    def test_missing_error_flag_defaults_false(self):
        assert parse_reply('{"payloadtype": "x", "payload": ""}')["error"] is False

    def test_non_bool_error_flag_rejected(self):
        with pytest.raises(EnvelopeError, match="boolean"):
            parse_reply('{"payloadtype": "x", "payload": "", "error": "yes"}')

    def test_missing_payload_rejected(self):
        with pytest.raises(EnvelopeError, match="payload"):
            parse_reply('{"payloadtype": "x", "error": false}')

    def test_reply_must_be_object(self):
        with pytest.raises(EnvelopeError, match="JSON object"):
            parse_reply("[]")

    def test_url_safe_base64_rejected(self):
        with pytest.raises(EnvelopeError, match="not valid base64"):
            decode_payload("ab-_")

    def test_bad_padding_rejected(self):
        with pytest.raises(EnvelopeError, match="decode failed"):
            decode_payload("abc")

    def test_non_utf8_rejected(self):
        with pytest.raises(EnvelopeError, match="UTF-8"):
            decode_payload(base64.b64encode(b"\xff\xfe").decode("ascii"))


class TestParseFailure:
    def test_failure_object(self):
        assert parse_failure('{"status": 400, "message": "bad request"}', 500) == (
            400,
            "bad request",
        )

    def test_missing_status_uses_transport_status(self):
        assert parse_failure('{"message": "nope"}', 403) == (403, "nope")

    def test_plain_text_kept_verbatim(self):
        assert parse_failure("gateway exploded", 502) == (502, "gateway exploded")

    @pytest.mark.parametrize("reported", ['"403"', "403.5", "true", "null", "0"])
    def test_unusable_status_uses_transport_status(self, reported):
        text = '{"status": %s, "message": "nope"}' % reported
        assert parse_failure(text, 502) == (502, "nope")
