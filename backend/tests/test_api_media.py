import logging

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.payloads import episode_doc, movie_doc, season_doc, series_doc

EPISODES = "/api/series/Dark/seasons/1/episodes"


# ------------------------------
# Episodes
# ------------------------------
@pytest.mark.anyio
async def test_episode_crud(async_client: AsyncClient):
    r = await async_client.post(EPISODES, json=episode_doc(1, duration="52 min", airDate="2017-12-01T00:00:00Z"))
    assert r.status_code == 201
    body = r.json()
    assert (body["seriesName"], body["seasonNumber"], body["episodeNumber"]) == ("Dark", 1, 1)
    assert body["duration"] == "52 min"

    r = await async_client.get(f"{EPISODES}/1")
    assert r.status_code == 200
    assert r.json()["title"] == "Episode 1"

    r = await async_client.put(f"{EPISODES}/1", json={"title": "Secrets"})
    assert r.status_code == 200
    assert r.json()["title"] == "Secrets"
    assert r.json()["duration"] == "52 min"

    r = await async_client.delete(f"{EPISODES}/1")
    assert r.status_code == 200
    assert r.json() == {"message": "Episode deleted successfully."}

    assert (await async_client.get(f"{EPISODES}/1")).status_code == 404
    assert (await async_client.delete(f"{EPISODES}/1")).status_code == 404


@pytest.mark.anyio
async def test_episode_missing_streaming_url(async_client: AsyncClient):
    doc = episode_doc(1)
    del doc["streamingUrl"]
    r = await async_client.post(EPISODES, json=doc)
    assert r.status_code == 400
    assert [d["field"] for d in r.json()["details"]] == ["streamingUrl"]


@pytest.mark.anyio
async def test_duplicate_episode_conflicts(async_client: AsyncClient):
    await async_client.post(EPISODES, json=episode_doc(1))
    r = await async_client.post(EPISODES, json=episode_doc(1, title="Again"))
    assert r.status_code == 409


@pytest.mark.anyio
async def test_bulk_insert_is_all_or_nothing(async_client: AsyncClient):
    bad = episode_doc(2)
    del bad["streamingUrl"]
    r = await async_client.post(f"{EPISODES}/bulk", json={"episodes": [episode_doc(1), bad]})
    assert r.status_code == 400
    assert r.json()["details"][0]["field"].startswith("episodes.1")
    assert (await async_client.get(EPISODES)).json() == []

    r = await async_client.post(f"{EPISODES}/bulk", json={"episodes": [episode_doc(1), episode_doc(2)]})
    assert r.status_code == 201
    assert [e["episodeNumber"] for e in r.json()] == [1, 2]


@pytest.mark.anyio
async def test_bulk_insert_duplicate_in_batch_conflicts(async_client: AsyncClient):
    r = await async_client.post(f"{EPISODES}/bulk", json={"episodes": [episode_doc(1), episode_doc(1)]})
    assert r.status_code == 409
    assert (await async_client.get(EPISODES)).json() == []


@pytest.mark.anyio
async def test_bulk_insert_requires_array(async_client: AsyncClient):
    r = await async_client.post(f"{EPISODES}/bulk", json={"episodes": episode_doc(1)})
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == "episodes"


@pytest.mark.anyio
async def test_strict_mode_rejects_episode_without_season(strict_client: AsyncClient):
    await strict_client.post("/api/series", json=series_doc("Dark"))
    r = await strict_client.post(EPISODES, json=episode_doc(1))
    assert r.status_code == 404

    await strict_client.post("/api/series/Dark/seasons", json=season_doc(1))
    r = await strict_client.post(EPISODES, json=episode_doc(1))
    assert r.status_code == 201


@pytest.mark.anyio
async def test_episode_search_endpoint(async_client: AsyncClient):
    await async_client.post(f"{EPISODES}/bulk", json={"episodes": [episode_doc(1, title="Secrets"), episode_doc(2)]})
    await async_client.post(
        "/api/series/Dark/seasons/2/episodes", json=episode_doc(1, title="Lost and Found"),
    )
    await async_client.post("/api/series/Lost/seasons/1/episodes", json=episode_doc(1, title="Pilot"))

    r = await async_client.get("/api/episodes", params={"series": "Dark"})
    assert [e["title"] for e in r.json()] == ["Secrets", "Episode 2", "Lost and Found"]

    r = await async_client.get("/api/episodes", params={"series": "Dark", "season": 2})
    assert [e["title"] for e in r.json()] == ["Lost and Found"]

    r = await async_client.get("/api/episodes", params={"search": "LOST"})
    assert [e["title"] for e in r.json()] == ["Lost and Found"]

    r = await async_client.get("/api/series/Dark/episodes")
    assert len(r.json()) == 3


@pytest.mark.anyio
async def test_episode_search_rejects_non_integer_season(async_client: AsyncClient):
    r = await async_client.get("/api/episodes", params={"season": "two"})
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == "query.season"


# ------------------------------
# Movies
# ------------------------------
@pytest.mark.anyio
async def test_movie_crud(async_client: AsyncClient):
    r = await async_client.post("/api/movies", json=movie_doc("Heat", addedBy=7))
    assert r.status_code == 201
    movie = r.json()
    assert movie["addedBy"] == 7

    r = await async_client.get(f"/api/movies/{movie['id']}")
    assert r.json()["name"] == "Heat"

    r = await async_client.put(f"/api/movies/{movie['id']}", json={"name": "Heat (1995)"})
    assert r.status_code == 200
    assert r.json()["name"] == "Heat (1995)"
    assert r.json()["streamingUrl"] == movie["streamingUrl"]

    r = await async_client.get("/api/movies", params={"search": "1995"})
    assert [m["id"] for m in r.json()] == [movie["id"]]

    r = await async_client.delete(f"/api/movies/{movie['id']}")
    assert r.status_code == 200
    assert (await async_client.get(f"/api/movies/{movie['id']}")).status_code == 404


@pytest.mark.anyio
async def test_movie_validation_and_missing(async_client: AsyncClient):
    r = await async_client.post("/api/movies", json={"name": "Heat", "thumbnail": "x"})
    assert r.status_code == 400
    assert [d["field"] for d in r.json()["details"]] == ["streamingUrl"]

    assert (await async_client.put("/api/movies/99", json={"name": "x"})).status_code == 404
    assert (await async_client.delete("/api/movies/99")).status_code == 404


@pytest.mark.anyio
async def test_movie_commit_failure_is_a_store_error(async_client: AsyncClient, monkeypatch, caplog):
    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with monkeypatch.context() as m:
        m.setattr(AsyncSession, "commit", failing_commit)
        with caplog.at_level(logging.ERROR, logger="mediacatalog.errors"):
            r = await async_client.post("/api/movies", json=movie_doc("Heat"))

    assert r.status_code == 500
    assert r.json() == {"error": "Internal store error."}
    assert "disk I/O error" in caplog.text
    assert (await async_client.get("/api/movies")).json() == []


# ------------------------------
# Combined views and stats
# ------------------------------
@pytest.mark.anyio
async def test_media_view_sorted_and_tagged(async_client: AsyncClient):
    await async_client.post("/api/movies", json=movie_doc("Heat", addedAt="2024-01-01T00:00:00Z"))
    await async_client.post("/api/series", json=series_doc("Dark", addedAt="2024-06-01T00:00:00Z"))
    await async_client.post("/api/series/Dark/seasons", json=season_doc(1))

    r = await async_client.get("/api/media")
    assert r.status_code == 200
    items = r.json()
    assert [(i["type"], i["name"]) for i in items] == [("series", "Dark"), ("movie", "Heat")]
    assert "seasons" not in items[0]

    r = await async_client.get("/api/media", params={"search": "hea"})
    assert [i["name"] for i in r.json()] == ["Heat"]


@pytest.mark.anyio
async def test_complete_catalog_endpoint(async_client: AsyncClient):
    for name in ("Dark", "Lost"):
        await async_client.post("/api/series", json=series_doc(name))
        await async_client.post(f"/api/series/{name}/seasons", json=season_doc(1))
        await async_client.post(f"/api/series/{name}/seasons/1/episodes", json=episode_doc(1))

    r = await async_client.get("/api/complete")
    assert r.status_code == 200
    body = r.json()
    assert [s["name"] for s in body] == ["Dark", "Lost"]
    assert all(len(s["seasons"][0]["episodes"]) == 1 for s in body)

    r = await async_client.get("/api/complete", params={"search": "los"})
    assert [s["name"] for s in r.json()] == ["Lost"]


@pytest.mark.anyio
async def test_global_stats_endpoint(async_client: AsyncClient):
    await async_client.post("/api/movies", json=movie_doc("Heat"))
    await async_client.post("/api/series", json=series_doc("Dark"))
    await async_client.post(f"{EPISODES}/bulk", json={"episodes": [episode_doc(1), episode_doc(2)]})

    r = await async_client.get("/api/stats")
    assert r.json() == {"movies": 1, "series": 1, "episodes": 2, "total": 4}
