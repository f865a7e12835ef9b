import asyncio
import json
from pathlib import Path

import httpx

from blocos import pipeline
from blocos.cache import RouteCache
from blocos.config import Settings
from blocos.matching import PREFIX_INSERTION
from blocos.models import BlockRecord, Coordinate, RouteGeometry
from blocos.neighborhoods import NEIGHBORHOODS
from conftest import build_kmz, placemark_line, placemark_point

CONCENTRATION = Coordinate(-22.9110, -43.1760)
ROUTE = [(-22.9100, -43.1750), (-22.9150, -43.1760), (-22.9200, -43.1770)]


def make_settings(**changes) -> Settings:
    settings = Settings(
        api_url=None,
        spreadsheet=None,
        kmz=None,
        fallback=None,
        cameras_url=None,
        traffic_url=None,
        osrm_url="https://osrm.test/route/v1/driving",
        geocoder_user_agent="blocos-tests",
    )
    return settings.with_overrides(**changes)


def routes_kmz() -> bytes:
    return build_kmz(
        placemark_line("BLOCO BOLA PRETA", ROUTE),
        placemark_point("BLOCO BOLA PRETA", *CONCENTRATION),
    )


def api_payload():
    return {
        "status": "success",
        "dados": [
            {
                "NomeBloco": "Bola Preta",
                "Inscricao": "101",
                "Data": "2026-02-14",
                "Bairro": "Centro",
                "SituacaoBloco": "ATIVO",
                "SituacaoDesfile": "AUTORIZADO",
            }
        ],
    }


def test_reconcile_matches_and_replaces_anchor():
    block = BlockRecord(id=1, name="Bola Preta", date=None, anchor=Coordinate(*NEIGHBORHOODS["CENTRO"]))
    unmatched = BlockRecord(id=2, name="Sem Percurso", date=None, anchor=Coordinate(0.0, 0.0))
    route = RouteGeometry(
        name="BLOCO BOLA PRETA",
        points=tuple(Coordinate(*point) for point in ROUTE),
        length_m=1100,
        concentration_point=CONCENTRATION,
    )

    enriched, stats = pipeline.reconcile([block, unmatched], {"BLOCO BOLA PRETA": route})

    assert stats.total_blocks == 2
    assert stats.matched == 1
    assert stats.unmatched == 1
    assert stats.by_strategy[PREFIX_INSERTION] == 1
    assert enriched[0].anchor == CONCENTRATION
    assert enriched[0].has_route
    assert enriched[0].matched_name == "BLOCO BOLA PRETA"
    assert enriched[1].anchor == Coordinate(0.0, 0.0)
    assert not enriched[1].has_route
    assert enriched[1].match_strategy is None


def test_reconcile_keeps_block_anchor_without_concentration_point():
    block = BlockRecord(id=1, name="Bola Preta", date=None, anchor=Coordinate(1.0, 2.0))
    route = RouteGeometry(name="BOLA PRETA", points=tuple(Coordinate(*p) for p in ROUTE), length_m=1)
    enriched, _ = pipeline.reconcile([block], {"BOLA PRETA": route})
    assert enriched[0].anchor == Coordinate(1.0, 2.0)


def test_reconcile_simplifies_once_per_route_with_cache():
    long_route = tuple(Coordinate(-22.9, -43.2 + i * 0.0001) for i in range(80))
    route = RouteGeometry(name="BOI TOLO", points=long_route, length_m=900)
    blocks = [
        BlockRecord(id=1, name="Boi Tolo", date=None, anchor=Coordinate(0.0, 0.0)),
        BlockRecord(id=2, name="Bloco Boi Tolo", date=None, anchor=Coordinate(0.0, 0.0)),
    ]
    cache = RouteCache()

    enriched, stats = pipeline.reconcile(blocks, {"BOI TOLO": route}, cache=cache)
    assert stats.matched == 2
    assert len(cache) == 1
    assert enriched[0].route == (long_route[0], long_route[-1])

    raw, _ = pipeline.reconcile(blocks, {"BOI TOLO": route}, simplify=False)
    assert raw[0].route == long_route


def test_load_snapshot_end_to_end_with_api_and_kmz():
    kmz_bytes = routes_kmz()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.test":
            return httpx.Response(200, json=api_payload())
        if request.url.host == "files.test":
            return httpx.Response(200, content=kmz_bytes)
        if request.url.host == "cams.test":
            return httpx.Response(200, text="-22.9111;-43.1761;Cinelandia;001\n0;0;Broken;002\n")
        return httpx.Response(404)

    settings = make_settings(
        api_url="https://api.test/blocos",
        kmz="https://files.test/percursos.kmz",
        cameras_url="https://cams.test/cameras",
    )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await pipeline.load_snapshot(settings, client=client)

    snapshot = asyncio.run(scenario())

    assert snapshot.source == pipeline.SOURCE_API
    assert snapshot.notice is None
    assert snapshot.stats.matched == 1
    assert snapshot.stats.total_blocks == 1
    assert snapshot.geometry_groups_usable == 1
    block = snapshot.block(101)
    assert block is not None
    assert block.anchor == CONCENTRATION
    assert block.match_strategy == PREFIX_INSERTION
    assert [camera.code for camera in snapshot.cameras] == ["001"]


def test_load_snapshot_falls_back_to_spreadsheet_then_json(tmp_path: Path):
    fallback = tmp_path / "fallback.json"
    fallback.write_text(
        json.dumps([{"Nome do Bloco": "Bola Preta", "Bairro": "Centro", "Data do Desfile": "14/02/2026"}]),
        encoding="utf-8",
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    settings = make_settings(
        api_url="https://api.test/blocos",
        spreadsheet="https://files.test/blocos.xlsx",
        fallback=str(fallback),
        kmz="https://files.test/percursos.kmz",
    )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await pipeline.load_snapshot(settings, client=client)

    snapshot = asyncio.run(scenario())

    assert snapshot.source == pipeline.SOURCE_FALLBACK
    assert snapshot.notice
    assert [block.name for block in snapshot.blocks] == ["Bola Preta"]
    # geometry failed too: the block keeps its neighborhood anchor
    assert snapshot.stats.matched == 0
    assert snapshot.blocks[0].anchor == Coordinate(*NEIGHBORHOODS["CENTRO"])


def test_load_snapshot_with_no_sources():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await pipeline.load_snapshot(make_settings(api_url="https://api.test/x"), client=client)

    snapshot = asyncio.run(scenario())
    assert snapshot.source == pipeline.SOURCE_NONE
    assert snapshot.blocks == []
    assert snapshot.stats.total_blocks == 0


def test_run_reconciliation_writes_reports_from_local_files(tmp_path: Path):
    kmz_path = tmp_path / "percursos.kmz"
    kmz_path.write_bytes(routes_kmz())
    fallback = tmp_path / "fallback.json"
    fallback.write_text(json.dumps([{"Nome do Bloco": "Bola Preta", "Bairro": "Centro"}]), encoding="utf-8")
    out_dir = tmp_path / "out"

    snapshot = pipeline.run_reconciliation(
        settings=make_settings(kmz=str(kmz_path), fallback=str(fallback)),
        out_dir=out_dir,
    )

    assert snapshot.stats.matched == 1
    payload = json.loads((out_dir / "blocos.json").read_text(encoding="utf-8"))
    assert payload["stats"]["matched"] == 1
    assert payload["blocks"][0]["has_route"] is True
    assert (out_dir / "blocos.csv").exists()
    markdown = (out_dir / "recon_report.md").read_text(encoding="utf-8")
    assert "1 of 1 blocks have traced routes" in markdown


def test_reconcile_cache_follows_route_changes_under_the_same_name():
    block = BlockRecord(id=1, name="Boi Tolo", date=None, anchor=Coordinate(0.0, 0.0))
    before = tuple(Coordinate(-22.9, -43.2 + i * 0.0001) for i in range(80))
    after = tuple(Coordinate(-22.8, -43.1 + i * 0.0001) for i in range(80))
    cache = RouteCache()

    first, _ = pipeline.reconcile(
        [block], {"BOI TOLO": RouteGeometry(name="BOI TOLO", points=before, length_m=900)}, cache=cache
    )
    second, _ = pipeline.reconcile(
        [block], {"BOI TOLO": RouteGeometry(name="BOI TOLO", points=after, length_m=900)}, cache=cache
    )

    assert first[0].route == (before[0], before[-1])
    assert second[0].route == (after[0], after[-1])


def test_load_snapshot_fallback_skips_rows_with_out_of_range_dates(tmp_path: Path):
    fallback = tmp_path / "fallback.json"
    fallback.write_text(
        json.dumps(
            [
                {"Nome do Bloco": "X", "Data do Desfile": 20260214},
                {"Nome do Bloco": "Y", "Data do Desfile": "14/02/2026"},
            ]
        ),
        encoding="utf-8",
    )
    snapshot = asyncio.run(pipeline.load_snapshot(make_settings(fallback=str(fallback))))

    assert snapshot.source == pipeline.SOURCE_FALLBACK
    assert [block.name for block in snapshot.blocks] == ["Y"]
