"""
Entry and exit signals.

A signal is a predicate deciding whether a single instrument may be entered
or exited. Signals are grouped into ordered chains evaluated with
short-circuit AND semantics: the chain accepts only if every signal accepts,
in list order, stopping at the first rejection.

The default implementations always accept. Subclasses carry whatever extra
parameters their trigger logic needs.
"""

from typing import Sequence

from loguru import logger

from optrader.core.models import ContractQuote, Position, Snapshot


class EntrySignal:
    """Signal used for triggering a position entry."""

    name = "entry"

    def trigger(self, snapshot: Snapshot, quote: ContractQuote) -> bool:
        """
        Decide whether the contract may be entered.

        Args:
            snapshot: Snapshot the quote comes from
            quote: Candidate contract

        Returns:
            True to accept
        """
        return True


class ExitSignal:
    """Signal used for triggering a position exit."""

    name = "exit"

    def trigger(self, snapshot: Snapshot, position: Position, quote: ContractQuote) -> bool:
        """
        Decide whether the position may be exited.

        Args:
            snapshot: Current snapshot
            position: Position being assessed
            quote: Quote matching the position symbol

        Returns:
            True to accept
        """
        return True


def entry_chain_accepts(
    signals: Sequence[EntrySignal],
    snapshot: Snapshot,
    quote: ContractQuote
) -> bool:
    """Evaluate entry signals in order, stopping at the first rejection."""
    for signal in signals:
        if not signal.trigger(snapshot, quote):
            logger.debug(f"Entry for {quote.symbol} rejected by {signal.name}")
            return False
    return True


def exit_chain_accepts(
    signals: Sequence[ExitSignal],
    snapshot: Snapshot,
    position: Position,
    quote: ContractQuote
) -> bool:
    """Evaluate exit signals in order, stopping at the first rejection."""
    for signal in signals:
        if not signal.trigger(snapshot, position, quote):
            logger.debug(f"Exit for {position.symbol} rejected by {signal.name}")
            return False
    return True
