"""Social posts, mock platform publishing and the scheduled-publish hook."""

from datetime import datetime, timedelta

from clinic.core.config import settings
from clinic.services.social_publisher import publish_to_platform

CRON = "/api/social/cron/publish-scheduled"


def _post(client, platforms=("facebook", "Instagram"), **extra):
    body = {"content": "Monsoon wellness camp this Sunday",
            "hashtags": ["ayurveda", "#wellness"],
            "platforms": list(platforms)}
    body.update(extra)
    resp = client.post("/api/social/posts", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestPublisher:

    def test_known_platform(self):
        res = publish_to_platform("linkedin", account=None, content="hi")
        assert res.success
        assert res.platform_post_id.startswith("li_")
        assert res.platform_url.endswith(res.platform_post_id)

    def test_unknown_platform(self):
        res = publish_to_platform("MYSPACE", account=None, content="hi")
        assert not res.success
        assert res.error == "Unsupported platform"


class TestPosts:

    def test_create_makes_placeholder_accounts(self, owner_client):
        post = _post(owner_client)
        assert post["status"] == "DRAFT"
        assert post["platforms"] == ["FACEBOOK", "INSTAGRAM"]
        assert {pp["status"] for pp in post["platform_posts"]} == {"PENDING"}

        accounts = owner_client.get("/api/social/accounts").json()["accounts"]
        assert [a["platform"] for a in accounts] == ["FACEBOOK", "INSTAGRAM"]

    def test_platforms_required(self, owner_client):
        resp = owner_client.post("/api/social/posts",
                                 json={"content": "x", "platforms": [" "]})
        assert resp.status_code == 400

    def test_publish(self, owner_client):
        post = _post(owner_client)
        resp = owner_client.post(f"/api/social/posts/{post['id']}/publish")
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["success"] is True
        assert body["post"]["status"] == "PUBLISHED"
        assert all(pp["platform_url"] for pp in body["post"]["platform_posts"])

        again = owner_client.post(f"/api/social/posts/{post['id']}/publish")
        assert again.status_code == 400
        assert again.json()["error"] == "Post is already published"

    def test_one_failing_platform_fails_post(self, owner_client):
        post = _post(owner_client, platforms=["twitter", "myspace"])
        body = owner_client.post(f"/api/social/posts/{post['id']}/publish").json()
        assert body["status"] == "FAILED"
        failed = [r for r in body["results"] if not r["success"]]
        assert [r["platform"] for r in failed] == ["MYSPACE"]

        stats = owner_client.get("/api/social/posts/stats").json()
        assert stats["failed"] == 1
        assert stats["total"] == 1

    def test_account_in_use_is_deactivated(self, owner_client):
        _post(owner_client, platforms=["facebook"])
        acc = owner_client.get("/api/social/accounts").json()["accounts"][0]
        resp = owner_client.delete(f"/api/social/accounts/{acc['id']}")
        assert resp.json() == {"message": "Account deactivated"}

    def test_owner_only(self, staff_client, doctor_client):
        assert staff_client.get("/api/social/posts").status_code == 403
        assert doctor_client.get("/api/social/posts").status_code == 403


class TestCron:

    def test_rejects_bad_secret(self, anon_client):
        resp = anon_client.post(CRON, headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_secret_not_configured(self, anon_client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        resp = anon_client.post(CRON, headers={"Authorization": "Bearer "})
        assert resp.status_code == 500

    def test_publishes_due_posts(self, owner_client, anon_client):
        due = (datetime.utcnow() - timedelta(minutes=5)).isoformat()
        later = (datetime.utcnow() + timedelta(days=2)).isoformat()
        first = _post(owner_client, scheduled_for=due)
        _post(owner_client, scheduled_for=later)
        assert first["status"] == "SCHEDULED"

        resp = anon_client.post(CRON,
                                headers={"Authorization": "Bearer cron-test-secret"})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["total"] == 1
        assert body["successful"] == 1

        detail = owner_client.get(f"/api/social/posts/{first['id']}").json()
        assert detail["status"] == "PUBLISHED"

    def test_rejects_prefix_of_secret(self, anon_client):
        resp = anon_client.post(CRON, headers={"Authorization": "Bearer cron-test"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unauthorized"

    def test_missing_header(self, anon_client):
        assert anon_client.post(CRON).status_code == 401
