from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PathsCfg(BaseModel):
    inbox: str
    archive: str
    error: str
    logs_root: str = "logs"


class EngineCfg(BaseModel):
    rules_file: Optional[str] = None
    advice_file: Optional[str] = None
    reject_empty: bool = True
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)


class WatchCfg(BaseModel):
    filename_globs: List[str] = ["*.txt", "*.json"]


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: PathsCfg
    engine: EngineCfg = EngineCfg()
    watch: WatchCfg = WatchCfg()
