"""
timingsign.core.ledger
======================

Backend-agnostic contracts for the append-only event ledger.

Every fact produced by a sequential run is appended as a `Row`: raw timing
observations, bootstrap statistics, decisions, the registered design and
runtime lifecycle events. Backends (`timingsign.backends.polars`,
`timingsign.backends.ibis`) implement `LedgerBase`; the typed DSL used by
components lives in `timingsign.core.traits.LedgerOps`.

- `Row`: one immutable ledger record
- `LedgerReader`: read-only query interface handed out by a backend
- `LedgerBase`: the write/read primitives a backend must provide (signals are
  appended through `append`)
- `PayloadRegistry`: optional decoders turning JSON payloads into typed objects

Examples
--------
>>> from timingsign.core.ledger import PayloadRegistry
>>> PayloadRegistry.register("Pair", lambda d: (d["a"], d["b"]))
>>> PayloadRegistry.decode("Pair", {"a": 1.0, "b": 2.0})
(1.0, 2.0)
>>> PayloadRegistry.decode("Unknown", {"x": 1})
{'x': 1}
>>> PayloadRegistry.unregister("Pair")
"""

from __future__ import annotations
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from timingsign.core.names import Namespace

# Type aliases
NamespaceLike = Union[Namespace, str]


def namespace_value(namespace: NamespaceLike) -> str:
    """Return the plain string form of a namespace."""
    return namespace.value if isinstance(namespace, Namespace) else str(namespace)


@dataclass(frozen=True)
class Row:
    """A single ledger record."""

    uuid: str
    time_index: str
    ts: datetime
    namespace: str
    kind: str
    entity: str
    snapshot_id: str
    tag: Optional[str]
    payload_type: str
    payload: Any


class PayloadRegistry:
    """Registry of decoders keyed by `payload_type`.

    Payloads without a registered decoder are returned as plain dicts.
    """

    _decoders: Dict[str, Callable[[Dict[str, Any]], Any]] = {}

    @classmethod
    def register(
        cls, payload_type: str, decoder: Callable[[Dict[str, Any]], Any]
    ) -> None:
        """Register a decoder for a payload type."""
        cls._decoders[payload_type] = decoder

    @classmethod
    def unregister(cls, payload_type: str) -> None:
        cls._decoders.pop(payload_type, None)

    @classmethod
    def decode(cls, payload_type: str, payload: Dict[str, Any]) -> Any:
        """Decode a payload, falling back to the raw dict."""
        decoder = cls._decoders.get(payload_type)
        if decoder is None:
            return payload
        return decoder(payload)


def encode_payload(payload: Dict[str, Any]) -> str:
    """Compact JSON encoding shared by all backends."""
    return json.dumps(payload, separators=(",", ":"))


def decode_payload(raw: Optional[str]) -> Dict[str, Any]:
    """Inverse of `encode_payload`; empty or missing payloads decode to {}."""
    if not raw:
        return {}
    return json.loads(raw)


class LedgerReader(ABC):
    """Read-only, filterable view over ledger rows (oldest first)."""

    @abstractmethod
    def iter_rows(
        self,
        *,
        namespace: Optional[str] = None,
        kind: Optional[str] = None,
        entity: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Iterator[Row]:
        """Iterate matching rows in append order."""

    @abstractmethod
    def latest(
        self,
        *,
        namespace: Optional[str] = None,
        kind: Optional[str] = None,
        entity: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Optional[Row]:
        """Return the most recently appended matching row, or None."""

    @abstractmethod
    def count(self, **filters: Any) -> int:
        """Count matching rows."""

    def collect_measurements(
        self,
        *,
        entity: str,
        sides: Sequence[str],
        namespace: Optional[str] = None,
    ) -> Dict[str, List[float]]:
        """
        Concatenate the per-side lists of an entity's observation rows.

        Generic path over decoded rows; backends with columnar storage
        override it.
        """
        collected: Dict[str, List[float]] = {side: [] for side in sides}
        for row in self.iter_rows(namespace=namespace, entity=entity):
            payload = row.payload
            for side in sides:
                if isinstance(payload, dict):
                    values = payload.get(side) or ()
                else:
                    values = getattr(payload, side, ())
                collected[side].extend(float(v) for v in values)
        return collected


class LedgerBase(ABC):
    """Primitives every ledger backend implements."""

    @abstractmethod
    def append(
        self,
        *,
        time_index: str,
        ts: datetime,
        namespace: NamespaceLike,
        kind: str,
        entity: str,
        snapshot_id: str,
        payload_type: str,
        payload: Dict[str, Any],
        tag: Optional[str] = None,
    ) -> "LedgerBase":
        """Append one record and return self."""

    def emit_signal(
        self,
        *,
        time_index: str,
        ts: datetime,
        entity: str,
        snapshot_id: str,
        topic: str,
        body: Dict[str, Any],
        tag: str = "signal",
        namespace: NamespaceLike = Namespace.SIGNALS,
        kind: str = "emitted",
    ) -> "LedgerBase":
        """Append a `Signal` record wrapping `topic` and `body`."""
        return self.append(
            time_index=time_index,
            ts=ts,
            namespace=namespace,
            kind=kind,
            entity=entity,
            snapshot_id=snapshot_id,
            payload_type="Signal",
            payload={"topic": topic, "body": body},
            tag=tag,
        )

    @abstractmethod
    def reader(self) -> LedgerReader:
        """Return a read-only view of the current ledger contents."""
