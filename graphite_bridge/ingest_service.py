"""Reenvío de un lote collectd al canal de Graphite."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .graphite.channel import GraphiteChannel
from .mapping import DEFAULT_EXPECTED_INTERVAL, map_records
from .metrics import INGEST_MALFORMED_RECORDS, INGEST_SAMPLES
from .schemas import CollectdRecordIn

logger = logging.getLogger(__name__)

FORWARD_DIRECT = "direct"
FORWARD_QUEUED = "queued"


@dataclass
class BatchResult:
    """Conteos de un lote: muestras producidas y errores."""
    total: int = 0
    errors: int = 0

    def summary(self) -> str:
        return f"Ok: {self.total}\nErrors: {self.errors}\n"


def forward_batch(
    channel: GraphiteChannel,
    records: Sequence[CollectdRecordIn],
    *,
    mode: str = FORWARD_DIRECT,
    expected_interval: float = DEFAULT_EXPECTED_INTERVAL,
    direct_write_timeout: Optional[float] = None,
) -> BatchResult:
    """Mapea el lote y envía cada muestra.

    En modo "direct" cada muestra se escribe de forma síncrona y los fallos
    de escritura se cuentan. En modo "queued" solo se cuentan las muestras
    rechazadas por la cola. Cada registro malformado cuenta como un error.
    """
    mapping = map_records(records, expected_interval)
    result = BatchResult(total=len(mapping.samples), errors=len(mapping.errors))

    INGEST_SAMPLES.inc(result.total)
    if mapping.errors:
        INGEST_MALFORMED_RECORDS.inc(len(mapping.errors))

    for sample in mapping.samples:
        if mode == FORWARD_QUEUED:
            ok = channel.enqueue(sample)
        else:
            ok = channel.write_direct(sample, timeout=direct_write_timeout)
        if not ok:
            result.errors += 1

    if result.errors:
        logger.warning(
            "[INGEST] Batch forwarded with errors records=%d samples=%d errors=%d",
            len(records),
            result.total,
            result.errors,
        )
    else:
        logger.debug("[INGEST] Batch forwarded records=%d samples=%d", len(records), result.total)
    return result
