import base64
import binascii
from typing import Any

from solders.transaction import VersionedTransaction

from walletscope.ingest.models import CompiledInstruction, DecodedMessage, MessageHeader


class MessageDecodeError(ValueError):
    pass


def _payload_bytes(payload: Any) -> bytes:
    # getTransaction(encoding=base64) returns ["<data>", "base64"]
    if isinstance(payload, (list, tuple)):
        if len(payload) != 2 or payload[1] != "base64":
            raise MessageDecodeError(f"unsupported transaction payload: {payload!r:.60}")
        payload = payload[0]
    if not isinstance(payload, str):
        raise MessageDecodeError(f"expected base64 string, got {type(payload).__name__}")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise MessageDecodeError(f"invalid base64: {e}") from e


def decode_message(payload: Any) -> DecodedMessage:
    """
    Decode the wire transaction returned by getTransaction into a DecodedMessage.
    Handles legacy and v0 messages.
    """
    raw = _payload_bytes(payload)
    try:
        tx = VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise MessageDecodeError(f"malformed transaction: {e}") from e

    msg = tx.message
    header = msg.header
    return DecodedMessage(
        recent_blockhash=str(msg.recent_blockhash),
        header=MessageHeader(
            num_required_signatures=header.num_required_signatures,
            num_readonly_signed_accounts=header.num_readonly_signed_accounts,
            num_readonly_unsigned_accounts=header.num_readonly_unsigned_accounts,
        ),
        account_keys=tuple(str(k) for k in msg.account_keys),
        instructions=tuple(
            CompiledInstruction(
                program_id_index=ix.program_id_index,
                accounts=tuple(ix.accounts),
                data=bytes(ix.data),
            )
            for ix in msg.instructions
        ),
    )
