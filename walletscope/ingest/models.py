from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

LAMPORTS_PER_SOL = 1_000_000_000


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def _int_tuple(values: Optional[List[Any]]) -> Tuple[int, ...]:
    return tuple(int(v) for v in (values or []))


@dataclass(frozen=True)
class SignatureRef:
    """One entry of getSignaturesForAddress (newest-first as returned)."""

    signature: str
    slot: int
    block_time: Optional[int] = None
    err: Any = None
    confirmation_status: Optional[str] = None

    @classmethod
    def from_rpc(cls, d: Dict[str, Any]) -> "SignatureRef":
        return cls(
            signature=d["signature"],
            slot=int(d.get("slot") or 0),
            block_time=d.get("blockTime"),
            err=d.get("err"),
            confirmation_status=d.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class UiTokenAmount:
    amount: str
    decimals: int
    ui_amount: Optional[float]
    ui_amount_string: str

    @classmethod
    def from_rpc(cls, d: Dict[str, Any]) -> "UiTokenAmount":
        return cls(
            amount=str(d.get("amount", "0")),
            decimals=int(d.get("decimals") or 0),
            ui_amount=d.get("uiAmount"),
            ui_amount_string=str(d.get("uiAmountString", "")),
        )


@dataclass(frozen=True)
class TokenBalance:
    account_index: int
    mint: str
    owner: Optional[str]
    ui_token_amount: Optional[UiTokenAmount]

    @classmethod
    def from_rpc(cls, d: Dict[str, Any]) -> "TokenBalance":
        ui = d.get("uiTokenAmount")
        return cls(
            account_index=int(d.get("accountIndex") or 0),
            mint=d.get("mint", ""),
            owner=d.get("owner"),
            ui_token_amount=UiTokenAmount.from_rpc(ui) if isinstance(ui, dict) else None,
        )


@dataclass(frozen=True)
class LoadedAddresses:
    writable: Tuple[str, ...] = ()
    readonly: Tuple[str, ...] = ()

    @classmethod
    def from_rpc(cls, d: Optional[Dict[str, Any]]) -> "LoadedAddresses":
        if not isinstance(d, dict):
            return cls()
        return cls(
            writable=tuple(d.get("writable") or []),
            readonly=tuple(d.get("readonly") or []),
        )


@dataclass(frozen=True)
class TransactionMeta:
    fee: int
    err: Any = None
    pre_balances: Tuple[int, ...] = ()
    post_balances: Tuple[int, ...] = ()
    pre_token_balances: Tuple[TokenBalance, ...] = ()
    post_token_balances: Tuple[TokenBalance, ...] = ()
    compute_units_consumed: Optional[int] = None
    log_messages: Tuple[str, ...] = ()
    loaded_addresses: LoadedAddresses = field(default_factory=LoadedAddresses)

    @property
    def succeeded(self) -> bool:
        return self.err is None

    def balance_change(self, index: int) -> Optional[int]:
        """Post minus pre balance (lamports) for one account index."""
        if index >= len(self.pre_balances) or index >= len(self.post_balances):
            return None
        return self.post_balances[index] - self.pre_balances[index]

    @classmethod
    def from_rpc(cls, d: Dict[str, Any]) -> "TransactionMeta":
        return cls(
            fee=int(d.get("fee") or 0),
            err=d.get("err"),
            pre_balances=_int_tuple(d.get("preBalances")),
            post_balances=_int_tuple(d.get("postBalances")),
            pre_token_balances=tuple(TokenBalance.from_rpc(b) for b in d.get("preTokenBalances") or []),
            post_token_balances=tuple(TokenBalance.from_rpc(b) for b in d.get("postTokenBalances") or []),
            compute_units_consumed=d.get("computeUnitsConsumed"),
            log_messages=tuple(d.get("logMessages") or []),
            loaded_addresses=LoadedAddresses.from_rpc(d.get("loadedAddresses")),
        )


@dataclass(frozen=True)
class MessageHeader:
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int


@dataclass(frozen=True)
class CompiledInstruction:
    program_id_index: int
    accounts: Tuple[int, ...]
    data: bytes


@dataclass(frozen=True)
class DecodedMessage:
    recent_blockhash: str
    header: MessageHeader
    account_keys: Tuple[str, ...]
    instructions: Tuple[CompiledInstruction, ...]

    def program_id(self, instruction: CompiledInstruction) -> Optional[str]:
        if instruction.program_id_index < len(self.account_keys):
            return self.account_keys[instruction.program_id_index]
        return None


@dataclass(frozen=True)
class TransactionRecord:
    signature: str
    slot: int
    block_time: Optional[int] = None
    meta: Optional[TransactionMeta] = None
    message: Optional[DecodedMessage] = None


@dataclass(frozen=True)
class BatchResult:
    account: str
    transactions: Tuple[TransactionRecord, ...]
    fetched_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "fetched_at": self.fetched_at.isoformat(),
            "transaction_count": len(self.transactions),
            "transactions": [_record_to_dict(r) for r in self.transactions],
        }


def _token_balance_to_dict(b: TokenBalance) -> Dict[str, Any]:
    ui = b.ui_token_amount
    return {
        "account_index": b.account_index,
        "mint": b.mint,
        "owner": b.owner,
        "ui_token_amount": None
        if ui is None
        else {
            "amount": ui.amount,
            "decimals": ui.decimals,
            "ui_amount": ui.ui_amount,
            "ui_amount_string": ui.ui_amount_string,
        },
    }


def _record_to_dict(r: TransactionRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "signature": r.signature,
        "slot": r.slot,
        "block_time": r.block_time,
        "meta": None,
        "message": None,
    }
    if r.meta is not None:
        m = r.meta
        out["meta"] = {
            "fee": m.fee,
            "err": m.err,
            "pre_balances": list(m.pre_balances),
            "post_balances": list(m.post_balances),
            "pre_token_balances": [_token_balance_to_dict(b) for b in m.pre_token_balances],
            "post_token_balances": [_token_balance_to_dict(b) for b in m.post_token_balances],
            "compute_units_consumed": m.compute_units_consumed,
            "log_messages": list(m.log_messages),
            "loaded_addresses": {
                "writable": list(m.loaded_addresses.writable),
                "readonly": list(m.loaded_addresses.readonly),
            },
        }
    if r.message is not None:
        msg = r.message
        out["message"] = {
            "recent_blockhash": msg.recent_blockhash,
            "header": {
                "num_required_signatures": msg.header.num_required_signatures,
                "num_readonly_signed_accounts": msg.header.num_readonly_signed_accounts,
                "num_readonly_unsigned_accounts": msg.header.num_readonly_unsigned_accounts,
            },
            "account_keys": list(msg.account_keys),
            "instructions": [
                {
                    "program_id_index": ix.program_id_index,
                    "accounts": list(ix.accounts),
                    "data": ix.data.hex(),
                }
                for ix in msg.instructions
            ],
        }
    return out
