"""Integration tests: full workflow from team registration through export."""
from __future__ import annotations

import asyncio
import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from draftroom.config import draft_config
from draftroom.main import app
from draftroom.services import bot_picker

from conftest import COMMISSIONER

client = TestClient(app)

OWNERS = {"Sluggers": "u1", "Aces": "u2", "Bombers": "u3", "Closers": "u4"}


def _as(user_id):
    return {"X-User-Id": user_id}


def _create_league_draft(total_rounds=2):
    resp = client.post(
        "/api/drafts",
        json={"league_id": "league-1", "required_teams": 4, "total_rounds": total_rounds},
        headers=_as(COMMISSIONER),
    )
    assert resp.status_code == 200
    draft_id = resp.json()["id"]
    for name, owner in OWNERS.items():
        resp = client.post(f"/api/drafts/{draft_id}/teams", json={"name": name}, headers=_as(owner))
        assert resp.status_code == 200
    return draft_id


def _start(draft_id):
    resp = client.post(f"/api/drafts/{draft_id}/start", headers=_as(COMMISSIONER))
    assert resp.status_code == 200
    return resp.json()["order"]


def _pick_next(draft_id, player):
    team = client.get(f"/api/drafts/{draft_id}/next-team").json()["next_team"]
    return client.post(
        f"/api/drafts/{draft_id}/picks",
        json={"team_name": team, "player": player},
        headers=_as(OWNERS[team]),
    )


class TestFullWorkflow:
    def test_league_draft_to_export(self, players):
        draft_id = _create_league_draft()

        state = client.get(f"/api/drafts/{draft_id}").json()
        assert state["state"]["status"] == "not_started"
        assert len(state["teams"]) == 4
        assert state["next_team"] is None

        order = _start(draft_id)
        assert sorted(order) == sorted(OWNERS)

        made_by = []
        for i in range(8):
            resp = _pick_next(draft_id, f"Player {i + 1}")
            assert resp.status_code == 200, resp.text
            body = resp.json()
            assert body["outcome"] == "picked"
            assert body["pick_number"] == i + 1
            made_by.append(body["pick"]["team_name"])
        assert made_by == order + order[::-1]

        state = client.get(f"/api/drafts/{draft_id}").json()
        assert state["state"]["status"] == "completed"
        assert state["state"]["current_round"] == 3
        assert state["available_count"] == 12
        assert state["total_picks"] == 8

        resp = client.get(f"/api/export/drafts/{draft_id}")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        board = pd.read_csv(io.StringIO(resp.text))
        assert list(board.columns) == ["Pick", "Round", "Team", "Player", "Position", "Kind"]
        assert board["Pick"].tolist() == list(range(1, 9))
        assert board["Team"].tolist() == made_by
        assert board["Round"].tolist() == [1, 1, 1, 1, 2, 2, 2, 2]
        assert set(board["Kind"]) == {"human"}

    def test_xlsx_export(self, players):
        draft_id = _create_league_draft()
        _start(draft_id)
        _pick_next(draft_id, "Player 1")
        _pick_next(draft_id, "Player 2")

        resp = client.get(f"/api/export/drafts/{draft_id}", params={"format": "xlsx"})
        assert resp.status_code == 200
        board = pd.read_excel(io.BytesIO(resp.content), sheet_name="Draft Board")
        assert board["Player"].tolist() == ["Player 1", "Player 2"]

    def test_list_drafts(self, players):
        draft_id = _create_league_draft()
        client.post("/api/drafts", json={"league_id": "league-2"}, headers=_as("someone"))

        resp = client.get("/api/drafts", params={"league_id": "league-1"})
        assert resp.json()["count"] == 1
        assert resp.json()["drafts"][0]["id"] == draft_id
        assert client.get("/api/drafts").json()["count"] == 2

    def test_save_and_load(self, players, tmp_path, monkeypatch):
        monkeypatch.setattr(draft_config, "save_dir", tmp_path)
        draft_id = _create_league_draft()
        _start(draft_id)
        _pick_next(draft_id, "Player 1")

        resp = client.post(f"/api/drafts/{draft_id}/save")
        assert resp.status_code == 200
        assert (tmp_path / f"{draft_id}.json").exists()

        client.post(f"/api/drafts/{draft_id}/reset", headers=_as(COMMISSIONER))
        resp = client.post(f"/api/drafts/{draft_id}/load")
        assert resp.status_code == 200
        assert resp.json()["state"]["current_pick"] == 1
        assert len(resp.json()["picks"]) == 1

    def test_reset_and_cancel(self, players):
        draft_id = _create_league_draft()
        _start(draft_id)
        _pick_next(draft_id, "Player 1")

        resp = client.post(f"/api/drafts/{draft_id}/reset", headers=_as(COMMISSIONER))
        assert resp.json()["draft_status"] == "not_started"
        assert client.get(f"/api/drafts/{draft_id}/available").json()["count"] == 20

        _start(draft_id)
        resp = client.post(f"/api/drafts/{draft_id}/cancel", headers=_as(COMMISSIONER))
        assert resp.json()["draft_status"] == "cancelled"
        assert client.get(f"/api/drafts/{draft_id}/next-team").json()["next_team"] is None
        resp = client.post(
            f"/api/drafts/{draft_id}/picks",
            json={"team_name": "Sluggers", "player": "Player 2"},
            headers=_as("u1"),
        )
        assert resp.status_code == 409
        assert resp.json()["detail"]["kind"] == "already_terminal"


class TestErrorResponses:
    def test_wrong_turn(self, players):
        draft_id = _create_league_draft()
        order = _start(draft_id)
        waiting = order[1]

        resp = client.post(
            f"/api/drafts/{draft_id}/picks",
            json={"team_name": waiting, "player": "Player 1"},
            headers=_as(OWNERS[waiting]),
        )
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["kind"] == "wrong_turn"
        assert detail["expected_team"] == order[0]

    def test_player_unavailable(self, players):
        draft_id = _create_league_draft()
        _start(draft_id)
        _pick_next(draft_id, "Player 1")

        resp = _pick_next(draft_id, "Player 1")
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["kind"] == "player_unavailable"
        assert detail["available_count"] == 19

    def test_unknown_player(self, players):
        draft_id = _create_league_draft()
        _start(draft_id)
        resp = _pick_next(draft_id, "zzzz")
        assert resp.status_code == 404
        assert resp.json()["detail"]["kind"] == "player_not_found"

    def test_pick_for_someone_elses_team(self, players):
        draft_id = _create_league_draft()
        order = _start(draft_id)
        resp = client.post(
            f"/api/drafts/{draft_id}/picks",
            json={"team_name": order[0], "player": "Player 1"},
            headers=_as(OWNERS[order[1]]),
        )
        assert resp.status_code == 403
        assert resp.json()["detail"]["kind"] == "not_authorized"

    def test_missing_user_header(self, players):
        resp = client.post("/api/drafts", json={})
        assert resp.status_code == 401
        assert resp.json()["detail"]["kind"] == "not_authenticated"

    def test_pick_before_start(self, players):
        draft_id = _create_league_draft()
        resp = client.post(
            f"/api/drafts/{draft_id}/picks",
            json={"team_name": "Sluggers", "player": "Player 1"},
            headers=_as("u1"),
        )
        assert resp.status_code == 409
        assert resp.json()["detail"]["kind"] == "not_started"

    def test_start_with_too_few_teams(self, players):
        resp = client.post("/api/drafts", json={"required_teams": 4}, headers=_as(COMMISSIONER))
        draft_id = resp.json()["id"]
        client.post(f"/api/drafts/{draft_id}/teams", json={"name": "Solo"}, headers=_as("u1"))

        resp = client.post(f"/api/drafts/{draft_id}/start", headers=_as(COMMISSIONER))
        assert resp.status_code == 409
        assert resp.json()["detail"]["kind"] == "precondition_failed"

    def test_registration_errors(self, players):
        draft_id = _create_league_draft()
        resp = client.post(f"/api/drafts/{draft_id}/teams", json={"name": "Extra"}, headers=_as("u9"))
        assert resp.status_code == 409
        assert resp.json()["detail"]["kind"] == "registration_failed"

    def test_rename_requires_owner_or_commissioner(self, players):
        draft_id = _create_league_draft()
        teams = client.get(f"/api/drafts/{draft_id}").json()["teams"]
        team_id = next(t["id"] for t in teams if t["name"] == "Sluggers")
        url = f"/api/drafts/{draft_id}/teams/{team_id}"

        assert client.put(url, json={"name": "Hacked"}).status_code == 401
        resp = client.put(url, json={"name": "Hacked"}, headers=_as(OWNERS["Aces"]))
        assert resp.status_code == 403
        assert resp.json()["detail"]["kind"] == "not_authorized"

        resp = client.put(url, json={"name": "Big Sluggers"}, headers=_as(OWNERS["Sluggers"]))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Big Sluggers"
        resp = client.put(url, json={"name": "Sluggers"}, headers=_as(COMMISSIONER))
        assert resp.status_code == 200

    def test_unknown_draft(self):
        resp = client.get("/api/drafts/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["detail"]["kind"] == "draft_not_found"


class TestMockDraftFlow:
    @pytest.fixture(autouse=True)
    def scheduled(self, monkeypatch):
        """Record bot scheduling instead of starting background loops."""
        calls = []
        monkeypatch.setattr(bot_picker, "schedule_bot_turns", lambda draft_id, delay=None: calls.append(draft_id))
        return calls

    def test_play_mock_draft_against_bots(self, players, scheduled):
        resp = client.post(
            "/api/drafts/mock",
            json={"user_team_name": "Me", "num_bots": 3, "total_rounds": 2},
            headers=_as("me"),
        )
        assert resp.status_code == 200
        draft_id = resp.json()["draft_id"]
        assert "Me" in resp.json()["draft_order"]

        human_picks = 0
        for _ in range(10):
            summary = client.post(f"/api/drafts/{draft_id}/bots/run", json={"delay": 0}).json()
            if summary["stopped_reason"] == "completed":
                break
            assert summary["stopped_reason"] == "human_turn"
            assert summary["next_team"] == "Me"

            player = client.get(f"/api/drafts/{draft_id}/available").json()["players"][0]
            resp = client.post(
                f"/api/drafts/{draft_id}/picks",
                json={"team_name": "Me", "player": player["id"]},
                headers=_as("me"),
            )
            assert resp.status_code == 200
            human_picks += 1
            if resp.json()["is_complete"]:
                break

        state = client.get(f"/api/drafts/{draft_id}").json()
        assert state["state"]["status"] == "completed"
        assert len(state["picks"]) == 8
        assert human_picks == 2
        assert set(scheduled) <= {draft_id}
        assert len(scheduled) <= human_picks + 1

    def test_single_bot_turn_when_human_is_up(self, players):
        resp = client.post(
            "/api/drafts/mock", json={"user_team_name": "Me", "num_bots": 1}, headers=_as("me")
        )
        draft_id = resp.json()["draft_id"]
        if resp.json()["next_team"] != "Me":
            client.post(f"/api/drafts/{draft_id}/bot-turn")

        resp = client.post(f"/api/drafts/{draft_id}/bot-turn")
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "not_a_bot_turn"
        assert resp.json()["next_team"] == "Me"

    def test_too_many_bots(self, players):
        resp = client.post(
            "/api/drafts/mock", json={"user_team_name": "Me", "num_bots": 12}, headers=_as("me")
        )
        assert resp.status_code == 409

    def test_bots_start_picking_when_a_bot_is_first(self, players, scheduled):
        seen_bot_first = seen_human_first = False
        for _ in range(60):
            resp = client.post(
                "/api/drafts/mock", json={"user_team_name": "Me", "num_bots": 3}, headers=_as("me")
            )
            body = resp.json()
            if body["next_team"] == "Me":
                seen_human_first = True
                assert body["draft_id"] not in scheduled
            else:
                seen_bot_first = True
                assert body["draft_id"] in scheduled
            if seen_bot_first and seen_human_first:
                break
        assert seen_bot_first

    def test_rejected_reset_keeps_bot_loop_running(self, players):
        resp = client.post(
            "/api/drafts/mock", json={"user_team_name": "Me", "num_bots": 3}, headers=_as("me")
        )
        draft_id = resp.json()["draft_id"]
        loop = asyncio.new_event_loop()
        try:
            pending = loop.create_future()
            bot_picker._tasks[draft_id] = pending

            assert client.post(f"/api/drafts/{draft_id}/reset").status_code == 401
            resp = client.post(f"/api/drafts/{draft_id}/reset", headers=_as("intruder"))
            assert resp.status_code == 403
            assert bot_picker.is_running(draft_id)

            resp = client.post(f"/api/drafts/{draft_id}/reset", headers=_as("me"))
            assert resp.status_code == 200
            assert not bot_picker.is_running(draft_id)
            assert pending.cancelled()
        finally:
            loop.close()


class TestPlayerEndpoints:
    def test_upload_and_resolve(self):
        csv = "Name,Pos\nMike Trout,OF\nGerrit Cole,SP\n"
        resp = client.post(
            "/api/players/upload",
            files={"file": ("players.csv", csv.encode(), "text/csv")},
        )
        assert resp.status_code == 200
        assert resp.json()["player_count"] == 2

        resp = client.get("/api/players/resolve", params={"identifier": "mike trout"})
        assert resp.json()["name"] == "Mike Trout"
        resp = client.get("/api/players/resolve", params={"identifier": "Mike Trot"})
        assert resp.json()["name"] == "Mike Trout"
        assert client.get("/api/players", params={"position": "SP"}).json()["count"] == 1

        resp = client.get("/api/players/resolve", params={"identifier": "Nobody Real"})
        assert resp.status_code == 404

    def test_upload_rejects_bad_csv(self):
        resp = client.post(
            "/api/players/upload",
            files={"file": ("bad.csv", b"Team\nNYY\n", "text/csv")},
        )
        assert resp.status_code == 400

    def test_seed_and_clear(self):
        assert client.post("/api/players/seed", params={"count": 5}).json()["total_in_pool"] == 5
        client.delete("/api/players/clear")
        assert client.get("/api/players").json()["count"] == 0


def test_health():
    assert client.get("/api/health").json() == {"status": "ok"}
