"""Esquemas de entrada (collectd write_http) y modelo de salida (Graphite)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class CollectdRecordIn(BaseModel):
    """Un registro del formato JSON de collectd (plugin write_http).

    Formato esperado:
    {
        "values": [1901474177],
        "dstypes": ["counter"],
        "dsnames": ["value"],
        "time": 1280959128,
        "interval": 10,
        "host": "leeloo.octo.it",
        "plugin": "cpu",
        "plugin_instance": "0",
        "type": "cpu",
        "type_instance": "idle"
    }

    `values[i]` corresponde a `dsnames[i]`. collectd envía `null` para un
    gauge NaN; se reenvía como `nan`.
    """

    time: int = 0
    interval: float = 0
    host: str
    plugin: str
    plugin_instance: str = ""
    type: str
    type_instance: str = ""
    values: List[Optional[float]]
    dstypes: List[str] = Field(default_factory=list)
    dsnames: List[str]

    @field_validator("time", mode="before")
    @classmethod
    def truncate_time(cls, v):
        # collectd 5 envía el timestamp con decimales (1426585562.999).
        if isinstance(v, float):
            return int(v)
        return v

    @field_validator("plugin_instance", "type_instance", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v

    model_config = {
        "json_schema_extra": {
            "example": {
                "values": [3.2],
                "dstypes": ["gauge"],
                "dsnames": ["value"],
                "time": 1000,
                "interval": 10,
                "host": "web.01",
                "plugin": "cpu",
                "plugin_instance": "0",
                "type": "idle",
                "type_instance": "",
            }
        }
    }


CollectdBatch = TypeAdapter(List[CollectdRecordIn])


@dataclass(frozen=True)
class GraphiteSample:
    """Muestra normalizada: (métrica con puntos, valor, timestamp en segundos)."""

    metric: str
    value: float
    timestamp: int
