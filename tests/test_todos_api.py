from course_planner.errors import StoreUnavailableError
from course_planner.stores import InMemoryStore, get_store
from course_planner.main import app

BATCH_URL = "/api/v1/todos/batch"
USER_HEADERS = {"X-Caller-Sub": "user-1", "X-Caller-Issuer": "userPool"}
GUEST_HEADERS = {"X-Caller-Issuer": "apiKey"}


def assert_record_shape(record: dict):
    for key in ["id", "title", "content", "owner", "createdAt", "updatedAt"]:
        assert key in record
    assert isinstance(record["id"], str)
    assert isinstance(record["title"], str)


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "sqlite")

    def test_request_id_is_echoed(self, client):
        res = client.get("/", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"


class TestBatchCreate:
    def test_two_items_created(self, client, store):
        res = client.post(
            BATCH_URL,
            json={"requests": [{"title": "A"}, {"title": "B"}]},
            headers=USER_HEADERS,
        )
        assert res.status_code == 201
        body = res.json()
        assert body["failedCount"] == 0
        assert body["failures"] == []
        records = body["createdRecords"]
        assert len(records) == 2
        for record in records:
            assert_record_shape(record)
            assert record["owner"] == "user-1"
            assert record["content"] is None
            assert record["createdAt"] == record["updatedAt"]
        assert records[0]["createdAt"] == records[1]["createdAt"]
        assert records[0]["id"] != records[1]["id"]
        assert sorted(r["title"] for r in records) == ["A", "B"]

        _, total = store.list("Todo")
        assert total == 2

    def test_content_is_kept(self, client):
        res = client.post(
            BATCH_URL,
            json={"requests": [{"title": "Enroll", "content": "Math 101"}, {"title": "Pay", "content": ""}]},
            headers=USER_HEADERS,
        )
        assert res.status_code == 201
        records = res.json()["createdRecords"]
        assert records[0]["content"] == "Math 101"
        assert records[1]["content"] is None

    def test_empty_batch(self, client, store):
        res = client.post(BATCH_URL, json={"requests": []})
        assert res.status_code == 201
        assert res.json() == {"createdRecords": [], "failedCount": 0, "failures": []}
        assert store.list("Todo") == ([], 0)

    def test_missing_identity_is_401(self, client, store):
        res = client.post(BATCH_URL, json={"requests": [{"title": "A"}]})
        assert res.status_code == 401
        assert res.json()["error"] == "AuthenticationRequired"
        assert store.list("Todo") == ([], 0)

    def test_guest_issuer_creates_unowned_records(self, client):
        res = client.post(BATCH_URL, json={"requests": [{"title": "A"}]}, headers=GUEST_HEADERS)
        assert res.status_code == 201
        assert res.json()["createdRecords"][0]["owner"] is None

    def test_guest_writes_disabled(self, client, monkeypatch):
        monkeypatch.setenv("ALLOW_GUEST_WRITES", "false")
        res = client.post(BATCH_URL, json={"requests": [{"title": "A"}]}, headers=GUEST_HEADERS)
        assert res.status_code == 401

    def test_custom_anonymous_issuer(self, client, monkeypatch):
        monkeypatch.setenv("ANONYMOUS_ISSUERS", "iam,public")
        res_old = client.post(BATCH_URL, json={"requests": [{"title": "A"}]}, headers=GUEST_HEADERS)
        assert res_old.status_code == 401
        res_new = client.post(
            BATCH_URL, json={"requests": [{"title": "A"}]}, headers={"X-Caller-Issuer": "public"}
        )
        assert res_new.status_code == 201

    def test_batch_too_large(self, client, monkeypatch, store):
        monkeypatch.setenv("BATCH_MAX_ITEMS", "2")
        res = client.post(
            BATCH_URL,
            json={"requests": [{"title": "A"}, {"title": "B"}, {"title": "C"}]},
            headers=USER_HEADERS,
        )
        assert res.status_code == 413
        assert res.json()["error"] == "BatchTooLarge"
        assert store.list("Todo") == ([], 0)

    def test_partial_failure_reports_index(self, client):
        class FlakyStore(InMemoryStore):
            def put_if_absent(self, table, item):
                if item["title"] == "bad":
                    raise StoreUnavailableError("timed out")
                super().put_if_absent(table, item)

        app.dependency_overrides[get_store] = FlakyStore
        res = client.post(
            BATCH_URL,
            json={"requests": [{"title": "ok"}, {"title": "bad"}, {"title": "fine"}]},
            headers=USER_HEADERS,
        )
        assert res.status_code == 201
        body = res.json()
        assert len(body["createdRecords"]) == 2
        assert body["failedCount"] == 1
        assert body["failures"] == [{"originalIndex": 1, "errorDescription": "timed out"}]

    def test_store_unreachable_is_503(self, client):
        class DownStore(InMemoryStore):
            def put_if_absent(self, table, item):
                raise StoreUnavailableError("connection refused")

        app.dependency_overrides[get_store] = DownStore
        res = client.post(
            BATCH_URL, json={"requests": [{"title": "A"}, {"title": "B"}]}, headers=USER_HEADERS
        )
        assert res.status_code == 503
        assert res.json()["error"] == "InfrastructureError"
        assert "createdRecords" not in res.json()


class TestBasicAuthIdentity:
    def test_basic_auth_user_becomes_owner(self, client, monkeypatch):
        monkeypatch.setenv("ENABLE_BASIC_AUTH", "true")
        monkeypatch.setenv("BASIC_AUTH_USERNAME", "advisor")
        monkeypatch.setenv("BASIC_AUTH_PASSWORD", "s3cret")
        res = client.post(BATCH_URL, json={"requests": [{"title": "A"}]}, auth=("advisor", "s3cret"))
        assert res.status_code == 201
        assert res.json()["createdRecords"][0]["owner"] == "advisor"

    def test_basic_auth_rejects_bad_credentials(self, client, monkeypatch):
        monkeypatch.setenv("ENABLE_BASIC_AUTH", "true")
        monkeypatch.setenv("BASIC_AUTH_USERNAME", "advisor")
        monkeypatch.setenv("BASIC_AUTH_PASSWORD", "s3cret")
        res = client.post(BATCH_URL, json={"requests": [{"title": "A"}]}, auth=("advisor", "nope"))
        assert res.status_code == 401
        assert res.headers["WWW-Authenticate"] == "Basic"

        res_missing = client.post(BATCH_URL, json={"requests": [{"title": "A"}]})
        assert res_missing.status_code == 401


class TestValidationErrors:
    def test_blank_title(self, client):
        res = client.post(BATCH_URL, json={"requests": [{"title": "  "}]}, headers=USER_HEADERS)
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

    def test_missing_title(self, client):
        res = client.post(BATCH_URL, json={"requests": [{"content": "x"}]}, headers=USER_HEADERS)
        assert res.status_code == 422
