"""FastAPI front for the feature-extraction job registry."""

from __future__ import annotations

import argparse
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ltrkit.errors import (
    DocumentNotFoundError,
    DuplicateJobError,
    InvalidFeatureValueError,
    LtrError,
    StatisticsProviderError,
    UnknownJobError,
)
from ltrkit.index.memory import MemoryIndex
from ltrkit.ltr.models import FeatureRow, JobRequest
from ltrkit.ltr.registry import ExtractionJobRegistry
from ltrkit.utils.config import Config


class SubmitResponse(BaseModel):
    qid: str


def create_app(registry: Optional[ExtractionJobRegistry] = None, cfg: Optional[Config] = None) -> FastAPI:
    state: dict[str, ExtractionJobRegistry] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if registry is not None:
            state["registry"] = registry
            yield
            return
        config = cfg or Config(load=True)
        corpus = config.SERVICE.CORPUS
        if not corpus:
            raise RuntimeError("SERVICE.CORPUS must point to a doc_id<TAB>text file")
        print(f"Loading corpus {corpus}...")
        index = MemoryIndex.from_tsv(corpus, cfg=config)
        state["registry"] = ExtractionJobRegistry.from_config(index, config)
        print("Registry ready.")
        yield
        state.pop("registry").close()

    app = FastAPI(title="LTR Feature Service", lifespan=lifespan)

    def get_registry() -> ExtractionJobRegistry:
        reg = state.get("registry")
        if reg is None:
            raise RuntimeError("Registry not loaded")
        return reg

    @app.post("/jobs", response_model=SubmitResponse)
    def submit(request: JobRequest, debug: bool = False) -> SubmitResponse:
        try:
            qid = get_registry().submit(request.qid, request.doc_ids, request.payload(), debug=debug)
        except DuplicateJobError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return SubmitResponse(qid=qid)

    # Sync handler: FastAPI runs it in its threadpool, so blocking on the job is fine.
    @app.get("/jobs/{qid}", response_model=list[FeatureRow], response_model_by_alias=True, response_model_exclude_none=True)
    def retrieve(qid: str) -> list[FeatureRow]:
        try:
            return get_registry().retrieve(qid)
        except UnknownJobError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (DocumentNotFoundError, InvalidFeatureValueError) as e:
            raise HTTPException(status_code=422, detail=str(e))
        except StatisticsProviderError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except LtrError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/features")
    def features() -> list[str]:
        return get_registry().names()

    @app.get("/health")
    def health():
        return {"status": "ok", "registry_loaded": "registry" in state}

    return app


def main() -> None:
    import uvicorn

    ap = argparse.ArgumentParser(description="Serve LTR feature extraction over HTTP.")
    ap.add_argument("--config", type=str, default=None, help="YAML config (default: configs/base.yaml).")
    ap.add_argument("--corpus", type=str, default="", help="doc_id<TAB>text corpus (overrides SERVICE.CORPUS).")
    args = ap.parse_args()

    cfg = Config(load=True, path=args.config)
    if args.corpus:
        cfg.update_dict({"SERVICE": {"CORPUS": args.corpus}})
    uvicorn.run(create_app(cfg=cfg), host=cfg.SERVICE.HOST or "0.0.0.0", port=int(cfg.SERVICE.PORT or 8002))


if __name__ == "__main__":
    main()
