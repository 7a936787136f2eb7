"""
Request-scoped access to the objects built in the app lifespan
"""

from fastapi import Request

from minermonitor.services.ingest import IngestionNormalizer
from minermonitor.services.projector import ReadProjector
from minermonitor.store.memory import DeviceStore

def get_store(request: Request) -> DeviceStore:
    return request.app.state.store

def get_normalizer(request: Request) -> IngestionNormalizer:
    return request.app.state.normalizer

def get_projector(request: Request) -> ReadProjector:
    return request.app.state.projector
