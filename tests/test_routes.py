import httpx

from archive_data import ARCHIVE_VERSION, AUTHORS, COLLECTIONS, PLATFORMS, TAGS
from archive_viewer.core.state import app_state
from archive_viewer.core.version import VERSION
from archive_viewer.main import app
from archive_viewer.models import MAX_LIMIT, MAX_PAGE


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_health_before_archive_is_open():
    assert not app_state.is_ready()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        response = await http_client.get("/api/health")
    assert response.status_code == 503


class TestPosts:
    async def test_list_with_tags(self, client):
        response = await client.get("/api/posts", params={"tags": [1, 2]})
        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["list"]] == [1]
        assert data["total"] == 1
        assert [f["id"] for f in data["file_metas"]] == [2]

    async def test_list_defaults_to_newest(self, client):
        data = (await client.get("/api/posts")).json()
        assert [p["id"] for p in data["list"]] == [1, 2, 3]
        assert data["total"] == 3

    async def test_list_search_and_paging(self, client):
        data = (await client.get("/api/posts", params={"search": "post", "limit": 1, "page": 1})).json()
        assert [p["id"] for p in data["list"]] == [2]
        assert data["total"] == 2

    async def test_list_rejects_bad_paging(self, client):
        response = await client.get("/api/posts", params={"limit": 0})
        assert response.status_code == 422

    async def test_list_rejects_paging_beyond_bounds(self, client):
        for params in ({"page": 10**17, "limit": 1000}, {"page": MAX_PAGE + 1}, {"limit": MAX_LIMIT + 1}):
            response = await client.get("/api/posts", params=params)
            assert response.status_code == 422, params

    async def test_list_last_allowed_page_is_empty(self, client):
        response = await client.get("/api/posts", params={"page": MAX_PAGE, "limit": MAX_LIMIT})
        assert response.status_code == 200
        assert response.json()["list"] == []

    async def test_detail(self, client):
        response = await client.get("/api/posts/1")
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "first post"
        assert data["content"] == [{"Text": "hello"}, {"File": 1}]
        assert [t["name"] for t in data["tags"]] == ["A", "B"]
        assert [a["name"] for a in data["authors"]] == ["alice"]
        assert data["comments"][0]["replies"][0]["user"] == "alice"
        assert [f["id"] for f in data["file_metas"]] == [1, 2, 3, 4]
        assert [p["name"] for p in data["platforms"]] == ["pixiv"]

    async def test_detail_missing(self, client):
        response = await client.get("/api/posts/404")
        assert response.status_code == 404

    async def test_corrupt_stored_json_is_server_error(self, client):
        async with app_state.archive.transaction() as db:
            await db.execute("UPDATE posts SET content = '{not json' WHERE id = 3")
        response = await client.get("/api/posts/3")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        # other posts are unaffected
        assert (await client.get("/api/posts/1")).status_code == 200


class TestCategories:
    async def test_list_tags(self, client):
        data = (await client.get("/api/tags")).json()
        assert [t["name"] for t in data["list"]] == ["A", "B", "C"]
        assert data["total"] == len(TAGS)
        assert [p["id"] for p in data["platforms"]] == [1, 2]

    async def test_list_authors_drops_dangling_thumb(self, client):
        data = (await client.get("/api/authors")).json()
        assert data["total"] == len(AUTHORS)
        assert {a["name"]: a["thumb"] for a in data["list"]} == {
            "alice": 3, "bob": None, "carol": None,
        }

    async def test_search_collections(self, client):
        data = (await client.get("/api/collections", params={"search": "best"})).json()
        assert [c["name"] for c in data["list"]] == ["best of"]
        assert data["total"] == 1

    async def test_platform_detail(self, client):
        response = await client.get("/api/platforms/1")
        assert response.status_code == 200
        assert response.json()["name"] == dict(PLATFORMS)[1]

    async def test_detail_missing(self, client):
        assert (await client.get("/api/collections/404")).status_code == 404

    async def test_category_posts(self, client):
        data = (await client.get("/api/collections/1/posts")).json()
        assert [p["id"] for p in data["list"]] == [1, 2]
        assert data["total"] == 2

    async def test_posts_of_missing_category(self, client):
        assert (await client.get("/api/tags/404/posts")).status_code == 404

    async def test_category_paging_beyond_bounds(self, client):
        assert (await client.get("/api/tags", params={"page": 10**17})).status_code == 422
        assert (await client.get("/api/tags/1/posts", params={"limit": 0})).status_code == 422

    async def test_author_aliases(self, client):
        response = await client.get("/api/authors/1/aliases")
        assert response.status_code == 200
        data = response.json()
        assert [a["source"] for a in data["list"]] == ["alice_px", "alice_fb"]
        assert data["total"] == 2
        assert [p["name"] for p in data["platforms"]] == ["pixiv", "fanbox"]

    async def test_aliases_of_unknown_author(self, client):
        response = await client.get("/api/authors/404/aliases")
        assert response.status_code == 200
        assert response.json() == {"list": [], "total": 0}

    async def test_only_authors_have_aliases(self, client):
        assert (await client.get("/api/tags/1/aliases")).status_code == 404

    async def test_unsupported_order_is_bad_request(self, client):
        response = await client.get("/api/tags", params={"order_by": "updated"})
        assert response.status_code == 400

    async def test_unknown_order_is_rejected(self, client):
        response = await client.get("/api/tags", params={"order_by": "size"})
        assert response.status_code == 422


async def test_summary(client):
    response = await client.get("/api/summary")
    assert response.status_code == 200
    assert response.json() == {
        "version": VERSION,
        "postArchiverVersion": ARCHIVE_VERSION,
        "posts": 3,
        "tags": len(TAGS),
        "authors": len(AUTHORS),
        "collections": len(COLLECTIONS),
        "platforms": len(PLATFORMS),
    }


class TestRedirect:
    async def test_archived_source(self, client):
        response = await client.get("/api/redirect", params={"url": "https://example.com/p/1"})
        assert response.status_code == 308
        assert response.headers["location"] == "/posts/1"

    async def test_unknown_source(self, client):
        url = "https://example.com/p/unknown"
        response = await client.get("/api/redirect", params={"url": url})
        assert response.status_code == 308
        assert response.headers["location"] == url


async def test_public_config(client):
    response = await client.get("/api/config.json")
    assert response.json() == {
        "resource_url": "https://static.example.com/archiver",
        "images_url": None,
    }
