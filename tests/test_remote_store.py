import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from sesotho_trainer.errors import ConflictError, NotFoundError, SyncError
from sesotho_trainer.models import VocabularyDocument
from sesotho_trainer.sync import RemoteDocumentStore


def run(coro):
    return asyncio.run(coro)


def make_couch_app(state):
    """Tiny subset of the CouchDB HTTP API backed by a dict."""

    async def put_db(request):
        state["auth"].append(request.headers.get("Authorization"))
        db = request.match_info["db"]
        if db in state["dbs"]:
            return web.json_response({"error": "file_exists"}, status=412)
        state["dbs"][db] = {"docs": {}, "feed": []}
        return web.json_response({"ok": True}, status=201)

    async def changes(request):
        db = state["dbs"].get(request.match_info["db"])
        if db is None:
            return web.json_response({"error": "not_found"}, status=404)
        since = int(request.query.get("since", "0"))
        results = [
            {"seq": seq, "id": doc["_id"], "doc": doc, **({"deleted": True} if doc.get("_deleted") else {})}
            for seq, doc in enumerate(db["feed"], start=1)
            if seq > since
        ]
        return web.json_response({"results": results, "last_seq": len(db["feed"])})

    async def bulk_docs(request):
        db = state["dbs"][request.match_info["db"]]
        body = await request.json()
        assert body["new_edits"] is False
        for doc in body["docs"]:
            db["docs"][doc["_id"]] = doc
            db["feed"].append(doc)
        return web.json_response([], status=201)

    async def get_doc(request):
        db = state["dbs"][request.match_info["db"]]
        doc = db["docs"].get(request.match_info["doc_id"])
        if doc is None:
            return web.json_response({"error": "not_found"}, status=404)
        return web.json_response(doc)

    async def put_doc(request):
        db = state["dbs"][request.match_info["db"]]
        doc_id = request.match_info["doc_id"]
        body = await request.json()
        current = db["docs"].get(doc_id)
        if (current or {}).get("_rev") != body.get("_rev"):
            return web.json_response({"error": "conflict"}, status=409)
        generation = int(current["_rev"].split("-")[0]) if current else 0
        body["_rev"] = f"{generation + 1}-server"
        db["docs"][doc_id] = body
        db["feed"].append(body)
        return web.json_response({"ok": True, "id": doc_id, "rev": body["_rev"]}, status=201)

    app = web.Application()
    app.router.add_put("/{db}", put_db)
    app.router.add_get("/{db}/_changes", changes)
    app.router.add_post("/{db}/_bulk_docs", bulk_docs)
    app.router.add_get("/{db}/{doc_id}", get_doc)
    app.router.add_put("/{db}/{doc_id}", put_doc)
    return app


async def with_server(body):
    state = {"dbs": {}, "auth": []}
    server = test_utils.TestServer(make_couch_app(state))
    await server.start_server()
    try:
        base_url = str(server.make_url("/"))
        return await body(base_url, state)
    finally:
        await server.close()


def test_database_creation_and_auth():
    async def body(base_url, state):
        async with RemoteDocumentStore(base_url, "sesotho-vocab-thabo", "admin", "secret") as remote:
            created = await remote.ensure_database()
            again = await remote.ensure_database()
        return created, again, state

    created, again, state = run(with_server(body))
    assert created is True
    assert again is False
    assert "sesotho-vocab-thabo" in state["dbs"]
    assert all(header and header.startswith("Basic ") for header in state["auth"])


def test_get_and_put_with_revisions():
    async def body(base_url, state):
        async with RemoteDocumentStore(base_url, "sesotho-vocab-thabo") as remote:
            await remote.ensure_database()
            with pytest.raises(NotFoundError):
                await remote.get("vocab")

            rev1 = await remote.put("vocab", {"nouns": []})
            rev2 = await remote.put("vocab", {"nouns": [{"en_singular": "dog"}]}, rev1)
            with pytest.raises(ConflictError):
                await remote.put("vocab", {"nouns": []}, rev1)
            doc = await remote.get("vocab")
        return rev1, rev2, doc

    rev1, rev2, doc = run(with_server(body))
    assert rev1 == "1-server"
    assert rev2 == "2-server"
    assert doc == VocabularyDocument("vocab", {"nouns": [{"en_singular": "dog"}]}, "2-server")


def test_replicate_keeps_revisions_and_changes_skip_special_documents():
    async def body(base_url, state):
        async with RemoteDocumentStore(base_url, "sesotho-vocab-thabo") as remote:
            await remote.ensure_database()
            await remote.replicate([VocabularyDocument("vocab", {"verbs": []}, "4-abc")])
            feed = state["dbs"]["sesotho-vocab-thabo"]["feed"]
            feed.append({"_id": "_design/app", "_rev": "1-d"})
            feed.append({"_id": "old", "_rev": "2-x", "_deleted": True})

            documents, last_seq = await remote.changes(since=0, timeout=0)
            later, later_seq = await remote.changes(since=last_seq, timeout=0)
        return documents, last_seq, later, later_seq

    documents, last_seq, later, later_seq = run(with_server(body))
    assert documents == [VocabularyDocument("vocab", {"verbs": []}, "4-abc")]
    assert last_seq == 3
    assert later == []
    assert later_seq == 3


def test_http_errors_become_sync_errors():
    async def body(base_url, state):
        async with RemoteDocumentStore(base_url, "missing-db") as remote:
            await remote.changes(since=0, timeout=0)

    with pytest.raises(SyncError) as excinfo:
        run(with_server(body))
    assert excinfo.value.status == 404


def test_for_user_derives_database_name():
    remote = RemoteDocumentStore.for_user("thabo", base_url="http://couch.local:5984/")

    assert remote.db_name == "sesotho-vocab-thabo"
    assert remote.db_url == "http://couch.local:5984/sesotho-vocab-thabo"
