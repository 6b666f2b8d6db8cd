"""UTXO builder — reconcile fetched transactions into a wallet's UTXO set.

Pure, in-memory and deterministic: given the UTXO records already stored for
a wallet and a batch of newly fetched transactions, produce the updated set
plus the keys that were created or changed.

Two passes over the batch in chain order:

1. Outputs: every produced output becomes a UTXO (``is_spent=False``) unless
   one already exists; an existing incomplete record is completed in place
   and keeps its spent state.
2. Inputs: every consumed input marks its UTXO spent by the consuming
   transaction. An input whose UTXO is unknown becomes a synthesized spent
   record, ``historical`` when the address is the wallet's own and
   ``external_input`` otherwise.

All outputs are visible before any input is applied, so a transaction can
spend an output created earlier in the same batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from cardano_wallet.chain.blockfrost.models import LOVELACE, Amount, lovelace_of
from cardano_wallet.engine.models.utxo import UTXOOrigin
from cardano_wallet.errors.indexer_errors import ConflictingSpendError

if TYPE_CHECKING:
    from cardano_wallet.chain.blockfrost.models import TransactionDetails, TxInput, TxOutput

logger = logging.getLogger(__name__)


def utxo_key(tx_hash: str, output_index: int) -> str:
    """Render the ``tx_hash:output_index`` identifier."""
    return f"{tx_hash}:{output_index}"


@dataclass(frozen=True)
class UTXOEntry:
    """Value form of a UTXO record used during reconciliation."""

    tx_hash: str
    output_index: int
    address: str
    amount: tuple[Amount, ...] = ()
    block: str = ""
    data_hash: str | None = None
    inline_datum: str | None = None
    reference_script_hash: str | None = None
    is_spent: bool = False
    spent_in_tx: str | None = None
    is_external: bool = False
    origin: UTXOOrigin = UTXOOrigin.OUTPUT

    @property
    def key(self) -> str:
        return utxo_key(self.tx_hash, self.output_index)

    @property
    def is_complete(self) -> bool:
        """Whether the record carries full output data."""
        return self.origin == UTXOOrigin.OUTPUT and bool(self.block)

    @property
    def lovelace(self) -> int:
        return lovelace_of(self.amount)

    def quantity_of(self, unit: str = LOVELACE) -> int:
        return sum(a.quantity for a in self.amount if a.unit == unit)


@dataclass(frozen=True)
class SpendConflict:
    """A UTXO observed as spent by two different transactions."""

    utxo_key: str
    previous_spender: str
    new_spender: str


@dataclass
class BuildResult:
    """Outcome of one reconciliation run.

    Attributes:
        utxos: The complete updated UTXO set, keyed by ``tx_hash:output_index``.
        created: Keys that did not exist before, in creation order.
        updated: Pre-existing keys whose record changed.
        conflicts: Spends that overwrote a different earlier spender.
    """

    utxos: dict[str, UTXOEntry] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    conflicts: list[SpendConflict] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.updated)

    def changed(self) -> list[UTXOEntry]:
        """Records that must be persisted (created first, then updated)."""
        return [self.utxos[k] for k in (*self.created, *self.updated)]


class UTXOBuilder:
    """Build UTXO sets for one wallet.

    Args:
        owned_addresses: The wallet's resolved payment addresses.
        reject_conflicting_spends: Raise instead of overwriting when an input
            spends a UTXO already spent by a different transaction.
    """

    def __init__(
        self,
        owned_addresses: Iterable[str],
        *,
        reject_conflicting_spends: bool = False,
    ) -> None:
        self._owned = frozenset(owned_addresses)
        self._reject_conflicts = reject_conflicting_spends

    def is_owned(self, address: str) -> bool:
        return address in self._owned

    def build(
        self,
        transactions: Iterable[TransactionDetails],
        existing: Iterable[UTXOEntry] = (),
    ) -> BuildResult:
        """Apply *transactions* on top of the *existing* UTXO records.

        Args:
            transactions: Newly fetched transactions with inputs and outputs.
            existing: UTXO records already stored for the wallet.

        Returns:
            A :class:`BuildResult`; ``created`` and ``updated`` are empty when
            the batch was already fully applied.

        Raises:
            ConflictingSpendError: On a conflicting spend, when rejecting them.
        """
        before = {entry.key: entry for entry in existing}
        state = dict(before)
        ordered = sorted(transactions, key=lambda tx: (tx.block_height, tx.index, tx.hash))
        conflicts: list[SpendConflict] = []

        for tx in ordered:
            for output in tx.produced_outputs:
                self._apply_output(state, tx, output)

        for tx in ordered:
            for tx_input in tx.consumed_inputs:
                conflict = self._apply_input(state, tx, tx_input)
                if conflict is not None:
                    conflicts.append(conflict)

        created = [k for k in state if k not in before]
        updated = [k for k in state if k in before and state[k] != before[k]]
        logger.debug(
            "reconciled %d transactions: %d utxos created, %d updated",
            len(ordered), len(created), len(updated),
        )
        return BuildResult(utxos=state, created=created, updated=updated, conflicts=conflicts)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _apply_output(
        self, state: dict[str, UTXOEntry], tx: TransactionDetails, output: TxOutput
    ) -> None:
        key = utxo_key(tx.hash, output.output_index)
        current = state.get(key)
        if current is not None and current.is_complete:
            return

        fields = {
            "address": output.address,
            "amount": output.amount,
            "block": tx.block,
            "data_hash": output.data_hash,
            "inline_datum": output.inline_datum,
            "reference_script_hash": output.reference_script_hash,
            "is_external": not self.is_owned(output.address),
            "origin": UTXOOrigin.OUTPUT,
        }
        if current is None:
            state[key] = UTXOEntry(tx_hash=tx.hash, output_index=output.output_index, **fields)
            logger.debug("utxo %s created by %s", key, tx.hash)
        else:
            state[key] = replace(current, **fields)
            logger.debug("utxo %s completed from %s", key, tx.hash)

    def _apply_input(
        self, state: dict[str, UTXOEntry], tx: TransactionDetails, tx_input: TxInput
    ) -> SpendConflict | None:
        key = utxo_key(tx_input.tx_hash, tx_input.output_index)
        current = state.get(key)

        if current is None:
            owned = self.is_owned(tx_input.address)
            state[key] = UTXOEntry(
                tx_hash=tx_input.tx_hash,
                output_index=tx_input.output_index,
                address=tx_input.address,
                amount=tx_input.amount,
                is_spent=True,
                spent_in_tx=tx.hash,
                is_external=not owned,
                origin=UTXOOrigin.HISTORICAL if owned else UTXOOrigin.EXTERNAL_INPUT,
            )
            logger.debug("utxo %s synthesized from input of %s", key, tx.hash)
            return None

        if current.is_spent and current.spent_in_tx == tx.hash:
            return None

        conflict = None
        if current.is_spent and current.spent_in_tx is not None:
            if self._reject_conflicts:
                raise ConflictingSpendError(key, current.spent_in_tx, tx.hash)
            logger.warning(
                "utxo %s already spent by %s, overwriting with %s",
                key, current.spent_in_tx, tx.hash,
            )
            conflict = SpendConflict(key, current.spent_in_tx, tx.hash)

        state[key] = replace(current, is_spent=True, spent_in_tx=tx.hash)
        logger.debug("utxo %s spent in %s", key, tx.hash)
        return conflict
