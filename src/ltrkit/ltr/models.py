"""Wire models for feature-extraction jobs."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class JobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    qid: str
    doc_ids: list[str] = Field(alias="docIds")
    analyzed: list[str] = Field(default_factory=list)
    self_log: dict[str, dict[str, float]] = Field(default_factory=dict, alias="selfLog")

    def payload(self) -> dict:
        return self.model_dump(by_alias=True)


class FeatureRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    doc_id: str = Field(alias="docId")
    features: list[float]
    debug_timings_ns: Optional[list[int]] = Field(default=None, alias="debugTimingsNs")


FeatureRows = TypeAdapter(list[FeatureRow])


def dump_rows(rows: list[FeatureRow]) -> str:
    return FeatureRows.dump_json(rows, by_alias=True, exclude_none=True).decode("utf-8")


def load_rows(data: str) -> list[FeatureRow]:
    return FeatureRows.validate_json(data)
