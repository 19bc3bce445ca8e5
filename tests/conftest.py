"""Shared fixtures: in-memory Mongo store, stubbed network, seeded engine."""

import random

import mongomock
import pytest

from engine.fatigue import GlobalFatigue, build_type_fatigue
from engine.items import CandidateOrigin, build_candidate
from engine.selection import SelectionEngine
from engine.store import ItemStore


class StubNetwork:
    """Network candidate source returning canned raw items per type."""

    def __init__(self):
        self.raw = {}
        self.calls = []

    def add(self, item_type, raw):
        self.raw.setdefault(item_type, []).append(raw)

    def __call__(self, item_type, hints=None):
        self.calls.append((item_type, hints))
        candidates = []
        for raw in self.raw.get(item_type.value, []):
            candidate = build_candidate(item_type, raw, CandidateOrigin.NETWORK)
            if candidate:
                candidates.append(candidate)
        return candidates


@pytest.fixture
def store():
    client = mongomock.MongoClient()
    return ItemStore(uri='', db=client['randomapp_test'])


@pytest.fixture
def offline_store():
    """Store without any database configured."""
    return ItemStore(uri='')


@pytest.fixture
def network():
    return StubNetwork()


@pytest.fixture
def selector(store, network):
    return SelectionEngine(
        store=store,
        network=network,
        fatigue=build_type_fatigue(),
        global_fatigue=GlobalFatigue(),
        rng=random.Random(7),
    )
