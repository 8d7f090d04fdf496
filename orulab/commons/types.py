from typing import Any, Dict, Literal

from pydantic import BaseModel

from orulab.validation.validators import ReferenceColumns


class ReferenceCfg(BaseModel):
    table: str
    delimiter: str = ","
    columns: ReferenceColumns = ReferenceColumns()


class TransportCfg(BaseModel):
    type: Literal["file", "tcp"]
    file: Dict[str, Any] = {}
    tcp: Dict[str, Any] = {}


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: Dict[str, str]
    reference: ReferenceCfg
    transport: Dict[str, TransportCfg] = {}
