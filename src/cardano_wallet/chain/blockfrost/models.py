"""Blockfrost data models — amounts, transactions, inputs/outputs, accounts, assets.

Data classes representing the Blockfrost v0 REST responses consumed by the
ledger sync. Quantities arrive as decimal strings and are parsed to ``int``
so sums never lose precision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LOVELACE = "lovelace"

# Policy IDs are 28-byte hashes (56 hex chars) prefixing every native-asset unit
POLICY_ID_LENGTH = 56


def hex_to_string(value: str) -> str:
    """Decode a hex asset name to UTF-8, returning the input when it isn't text."""
    if not value or len(value) % 2 != 0:
        return value
    try:
        return bytes.fromhex(value).decode("utf-8")
    except ValueError:
        return value


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Amount:
    """A ``(unit, quantity)`` pair. ``unit`` is ``lovelace`` or policy id + asset name hex."""

    unit: str
    quantity: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Amount:
        return cls(unit=str(data["unit"]), quantity=int(data["quantity"]))

    def to_dict(self) -> dict[str, str]:
        return {"unit": self.unit, "quantity": str(self.quantity)}


def parse_amounts(items: list[dict[str, Any]] | None) -> tuple[Amount, ...]:
    """Parse a Blockfrost ``amount`` array."""
    return tuple(Amount.from_dict(item) for item in items or [])


def lovelace_of(amounts: tuple[Amount, ...] | list[Amount]) -> int:
    """Sum the lovelace entries of an amount multiset."""
    return sum(a.quantity for a in amounts if a.unit == LOVELACE)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AddressTransaction:
    """One row of ``GET /addresses/{addr}/transactions``."""

    tx_hash: str
    block_height: int
    tx_index: int = 0
    block_time: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressTransaction:
        return cls(
            tx_hash=data["tx_hash"],
            block_height=int(data.get("block_height", 0)),
            tx_index=int(data.get("tx_index", 0)),
            block_time=int(data.get("block_time", 0)),
        )


@dataclass(frozen=True)
class TxInput:
    """A transaction input: a reference to ``(tx_hash, output_index)`` plus its value.

    ``reference`` inputs are read but never consumed; ``collateral`` inputs are
    consumed only when the transaction's scripts failed.
    """

    address: str
    amount: tuple[Amount, ...]
    tx_hash: str
    output_index: int
    collateral: bool = False
    reference: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TxInput:
        return cls(
            address=data.get("address", ""),
            amount=parse_amounts(data.get("amount")),
            tx_hash=data["tx_hash"],
            output_index=int(data["output_index"]),
            collateral=bool(data.get("collateral", False)),
            reference=bool(data.get("reference", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "amount": [a.to_dict() for a in self.amount],
            "tx_hash": self.tx_hash,
            "output_index": self.output_index,
            "collateral": self.collateral,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class TxOutput:
    """A transaction output with optional datum / reference-script fields."""

    address: str
    amount: tuple[Amount, ...]
    output_index: int
    data_hash: str | None = None
    inline_datum: str | None = None
    reference_script_hash: str | None = None
    collateral: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TxOutput:
        return cls(
            address=data.get("address", ""),
            amount=parse_amounts(data.get("amount")),
            output_index=int(data["output_index"]),
            data_hash=data.get("data_hash") or None,
            inline_datum=data.get("inline_datum") or None,
            reference_script_hash=data.get("reference_script_hash") or None,
            collateral=bool(data.get("collateral", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "amount": [a.to_dict() for a in self.amount],
            "output_index": self.output_index,
            "data_hash": self.data_hash,
            "inline_datum": self.inline_datum,
            "reference_script_hash": self.reference_script_hash,
            "collateral": self.collateral,
        }


@dataclass(frozen=True)
class TransactionUtxos:
    """``GET /txs/{hash}/utxos`` — resolved inputs and outputs of one transaction."""

    hash: str
    inputs: tuple[TxInput, ...] = ()
    outputs: tuple[TxOutput, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, tx_hash: str = "") -> TransactionUtxos:
        return cls(
            hash=data.get("hash", tx_hash),
            inputs=tuple(TxInput.from_dict(i) for i in data.get("inputs") or []),
            outputs=tuple(TxOutput.from_dict(o) for o in data.get("outputs") or []),
        )

    def output_at(self, output_index: int) -> TxOutput | None:
        """Return the output with the given index, if present."""
        for output in self.outputs:
            if output.output_index == output_index:
                return output
        return None


@dataclass(frozen=True)
class TransactionSummary:
    """``GET /txs/{hash}`` — summary fields of a confirmed transaction."""

    hash: str
    block: str = ""
    block_height: int = 0
    block_time: int = 0
    slot: int = 0
    index: int = 0
    output_amount: tuple[Amount, ...] = ()
    fees: int = 0
    deposit: int = 0
    size: int = 0
    invalid_before: str | None = None
    invalid_hereafter: str | None = None
    utxo_count: int = 0
    withdrawal_count: int = 0
    mir_cert_count: int = 0
    delegation_count: int = 0
    stake_cert_count: int = 0
    pool_update_count: int = 0
    pool_retire_count: int = 0
    asset_mint_or_burn_count: int = 0
    redeemer_count: int = 0
    valid_contract: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionSummary:
        return cls(
            hash=data["hash"],
            block=data.get("block", ""),
            block_height=int(data.get("block_height") or 0),
            block_time=int(data.get("block_time") or 0),
            slot=int(data.get("slot") or 0),
            index=int(data.get("index") or 0),
            output_amount=parse_amounts(data.get("output_amount")),
            fees=int(data.get("fees") or 0),
            deposit=int(data.get("deposit") or 0),
            size=int(data.get("size") or 0),
            invalid_before=data.get("invalid_before"),
            invalid_hereafter=data.get("invalid_hereafter"),
            utxo_count=int(data.get("utxo_count") or 0),
            withdrawal_count=int(data.get("withdrawal_count") or 0),
            mir_cert_count=int(data.get("mir_cert_count") or 0),
            delegation_count=int(data.get("delegation_count") or 0),
            stake_cert_count=int(data.get("stake_cert_count") or 0),
            pool_update_count=int(data.get("pool_update_count") or 0),
            pool_retire_count=int(data.get("pool_retire_count") or 0),
            asset_mint_or_burn_count=int(data.get("asset_mint_or_burn_count") or 0),
            redeemer_count=int(data.get("redeemer_count") or 0),
            valid_contract=bool(data.get("valid_contract", True)),
        )


@dataclass(frozen=True)
class TransactionDetails(TransactionSummary):
    """A transaction summary joined with its resolved inputs and outputs."""

    inputs: tuple[TxInput, ...] = ()
    outputs: tuple[TxOutput, ...] = ()

    @classmethod
    def combine(cls, summary: TransactionSummary, utxos: TransactionUtxos) -> TransactionDetails:
        """Join the two per-transaction responses into one record."""
        fields = {name: getattr(summary, name) for name in summary.__dataclass_fields__}
        return cls(**fields, inputs=utxos.inputs, outputs=utxos.outputs)

    @property
    def consumed_inputs(self) -> tuple[TxInput, ...]:
        """Inputs this transaction actually spends.

        A phase-2 failure (``valid_contract`` false) consumes only the
        collateral; otherwise every regular input is consumed. Reference
        inputs are never consumed.
        """
        if not self.valid_contract:
            return tuple(i for i in self.inputs if i.collateral and not i.reference)
        return tuple(i for i in self.inputs if not i.collateral and not i.reference)

    @property
    def produced_outputs(self) -> tuple[TxOutput, ...]:
        """Outputs this transaction actually creates (collateral return only on failure)."""
        if not self.valid_contract:
            return tuple(o for o in self.outputs if o.collateral)
        return tuple(o for o in self.outputs if not o.collateral)


# ---------------------------------------------------------------------------
# Accounts & assets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountInfo:
    """``GET /accounts/{stake}`` — account-level balance."""

    stake_address: str
    controlled_amount: int = 0
    active: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccountInfo:
        return cls(
            stake_address=data.get("stake_address", ""),
            controlled_amount=int(data.get("controlled_amount") or 0),
            active=bool(data.get("active", False)),
        )


@dataclass(frozen=True)
class AssetBalance:
    """One native asset held by an account."""

    unit: str
    quantity: int

    @property
    def policy_id(self) -> str:
        return self.unit[:POLICY_ID_LENGTH]

    @property
    def asset_name(self) -> str:
        """Asset name as hex."""
        return self.unit[POLICY_ID_LENGTH:]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetBalance:
        return cls(unit=data["unit"], quantity=int(data["quantity"]))


_BASE64_IMAGE_PREFIXES = ("iVBOR", "/9j/", "UklGR")


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass
class AssetMetadata:
    """Display metadata for a native asset. Every field is best-effort."""

    name: str | None = None
    ticker: str | None = None
    description: str | None = None
    decimals: int | None = None
    image: str | None = None
    logo: str | None = None
    media_type: str | None = None
    fingerprint: str | None = None
    first_mint_tx: str | None = None
    mint_count: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, unit: str, data: dict[str, Any]) -> AssetMetadata:
        """Build metadata from ``GET /assets/{unit}``.

        Direct on-chain fields (CIP-68 / simple) are read first and then
        overridden by the CIP-25 ``721`` entry for this policy and asset name.
        """
        meta = cls()
        onchain = data.get("onchain_metadata") or {}
        offchain = data.get("metadata") or {}
        cip25 = _cip25_entry(unit, onchain)

        if onchain:
            meta.name = _text(onchain.get("name"))
            meta.description = _text(onchain.get("description"))
            meta.media_type = _text(onchain.get("mediaType"))
            if isinstance(onchain.get("attributes"), dict):
                meta.attributes = onchain["attributes"]
        if cip25:
            meta.name = _text(cip25.get("name")) or meta.name
            meta.description = _text(cip25.get("description")) or meta.description
            meta.media_type = _text(cip25.get("mediaType")) or meta.media_type
            if isinstance(cip25.get("attributes"), dict):
                meta.attributes = cip25["attributes"]

        if offchain:
            meta.name = meta.name or _text(offchain.get("name"))
            meta.ticker = _text(offchain.get("ticker"))
            meta.description = meta.description or _text(offchain.get("description"))
            if offchain.get("decimals") is not None:
                meta.decimals = int(offchain["decimals"])

        logo = _extract_logo(onchain, cip25, offchain)
        if logo:
            meta.image = logo
            meta.logo = logo

        if data.get("asset_name") and meta.ticker is None:
            meta.ticker = hex_to_string(data["asset_name"])
        meta.fingerprint = data.get("fingerprint")
        meta.first_mint_tx = data.get("initial_mint_tx_hash")
        if data.get("mint_or_burn_count") is not None:
            meta.mint_count = str(data["mint_or_burn_count"])
        return meta


def _cip25_entry(unit: str, onchain: dict[str, Any]) -> dict[str, Any]:
    policies = onchain.get("721")
    if not isinstance(policies, dict):
        return {}
    policy = policies.get(unit[:POLICY_ID_LENGTH])
    if not isinstance(policy, dict) or not policy:
        return {}
    entry = policy.get(unit[POLICY_ID_LENGTH:]) or next(iter(policy.values()))
    return entry if isinstance(entry, dict) else {}


def _extract_logo(
    onchain: dict[str, Any], cip25: dict[str, Any], offchain: dict[str, Any]
) -> str | None:
    """Pick the first usable image: on-chain, then CIP-25, then off-chain registry."""
    for candidate in (
        onchain.get("image"),
        onchain.get("logo"),
        cip25.get("image"),
        cip25.get("logo"),
    ):
        value = _text(candidate)
        if value:
            return value

    registry_logo = _text(offchain.get("logo"))
    if registry_logo:
        if registry_logo.startswith("data:image"):
            return registry_logo
        if registry_logo.startswith(_BASE64_IMAGE_PREFIXES):
            return f"data:image/png;base64,{registry_logo}"
        return registry_logo

    return _text(offchain.get("image"))
