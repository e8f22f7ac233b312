import pytest

from tests.fakes import make_tx_payload, make_v0_tx_payload
from walletscope.ingest.decode import MessageDecodeError, decode_message


def test_decodes_legacy_message(tx_payload):
    payload, (payer, target, program) = tx_payload

    msg = decode_message(payload)

    assert msg.header.num_required_signatures == 1
    assert msg.header.num_readonly_signed_accounts == 0
    assert msg.header.num_readonly_unsigned_accounts == 1
    assert msg.account_keys == (payer, target, program)
    assert msg.recent_blockhash == "11111111111111111111111111111111"

    (ix,) = msg.instructions
    assert ix.program_id_index == 2
    assert ix.accounts == (1,)
    assert ix.data == b"\x02\x00\x00\x00\x40\x42\x0f\x00"
    assert msg.program_id(ix) == program


def test_decodes_v0_message():
    payload, (payer, target, program) = make_v0_tx_payload(data=b"\t")

    msg = decode_message(payload)

    assert msg.header.num_required_signatures == 1
    assert msg.header.num_readonly_signed_accounts == 0
    assert msg.header.num_readonly_unsigned_accounts == 1
    assert msg.account_keys == (payer, target, program)

    (ix,) = msg.instructions
    assert ix.accounts == (1,)
    assert ix.data == b"\t"
    assert msg.program_id(ix) == program


def test_accepts_bare_base64_string():
    payload, _ = make_tx_payload(data=b"\x01")
    msg = decode_message(payload[0])
    assert msg.instructions[0].data == b"\x01"


@pytest.mark.parametrize(
    "payload",
    [
        ["AAAA", "base58"],
        ["%%%", "base64"],
        ["AAAA", "base64"],
        {"message": {}},
        None,
    ],
)
def test_bad_payloads_raise_decode_error(payload):
    with pytest.raises(MessageDecodeError):
        decode_message(payload)
