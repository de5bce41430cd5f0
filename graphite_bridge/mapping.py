"""Mapeo collectd → Graphite.

Convierte cada registro de collectd en una muestra por data source:

    collectd.<host>.<plugin>[.<plugin_instance>].[<type_instance>.]<type>.<dsname>

Solo `host` y `plugin_instance` se sanitizan (los consumidores existentes
dependen de este esquema de nombres).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List

from .schemas import CollectdRecordIn, GraphiteSample

logger = logging.getLogger(__name__)

METRIC_PREFIX = "collectd"
DEFAULT_EXPECTED_INTERVAL = 10.0


class MalformedRecordError(ValueError):
    """El registro no puede mapearse (values y dsnames con distinta longitud)."""

    def __init__(self, record: CollectdRecordIn):
        self.record = record
        super().__init__(
            f"Malformed record host={record.host!r} plugin={record.plugin!r} "
            f"type={record.type!r}: {len(record.values)} values vs "
            f"{len(record.dsnames)} dsnames"
        )


def sanitize(s: str) -> str:
    """Reemplaza puntos y espacios por '_' (idempotente)."""
    return s.replace(".", "_").replace(" ", "_")


def metric_base(record: CollectdRecordIn) -> str:
    """Nombre de la métrica sin el dsname final."""
    plugin = record.plugin
    if record.plugin_instance:
        plugin = f"{plugin}.{sanitize(record.plugin_instance)}"

    type_instance = f"{record.type_instance}." if record.type_instance else ""

    return f"{METRIC_PREFIX}.{sanitize(record.host)}.{plugin}.{type_instance}{record.type}"


def map_record(
    record: CollectdRecordIn,
    expected_interval: float = DEFAULT_EXPECTED_INTERVAL,
) -> List[GraphiteSample]:
    """Mapea un registro a una muestra por valor, en el mismo orden.

    Raises:
        MalformedRecordError: si values y dsnames no tienen la misma longitud
            (no se mapea ningún valor del registro).
    """
    if len(record.values) != len(record.dsnames):
        raise MalformedRecordError(record)

    if record.interval != expected_interval:
        logger.info(
            "[MAPPER] Unexpected interval=%s (expected %s) host=%s plugin=%s",
            record.interval,
            expected_interval,
            record.host,
            record.plugin,
        )

    base = metric_base(record)
    return [
        GraphiteSample(
            metric=f"{base}.{dsname}",
            value=math.nan if value is None else float(value),
            timestamp=record.time,
        )
        for value, dsname in zip(record.values, record.dsnames)
    ]


@dataclass
class MappingResult:
    """Resultado de mapear un lote completo."""
    samples: List[GraphiteSample] = field(default_factory=list)
    errors: List[MalformedRecordError] = field(default_factory=list)


def map_records(
    records: Iterable[CollectdRecordIn],
    expected_interval: float = DEFAULT_EXPECTED_INTERVAL,
) -> MappingResult:
    """Mapea un lote. Un registro malformado se omite y su error se acumula."""
    result = MappingResult()
    for record in records:
        try:
            result.samples.extend(map_record(record, expected_interval))
        except MalformedRecordError as e:
            logger.warning("[MAPPER] %s", e)
            result.errors.append(e)
    return result
