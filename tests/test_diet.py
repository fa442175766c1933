"""Seasonal diet templates and diet plans."""

import pytest

from clinic.services.diet_templates import (
    CONSTITUTIONS,
    DIET_TEMPLATES,
    SEASONS,
    current_season,
    fill_plan_fields,
    get_template,
)


class TestTemplates:

    @pytest.mark.parametrize("month,season", [
        (1, "WINTER"),
        (2, "SPRING"),
        (5, "SPRING"),
        (6, "SUMMER"),
        (8, "MONSOON"),
        (10, "AUTUMN"),
        (12, "WINTER"),
    ])
    def test_current_season(self, month, season):
        assert current_season(month) == season

    def test_every_pair_has_all_sections(self):
        for constitution in CONSTITUTIONS:
            for season in SEASONS:
                tpl = DIET_TEMPLATES[constitution][season]
                for key in ("morning", "lunch", "evening", "guidelines",
                            "restrictions"):
                    assert tpl[key], (constitution, season, key)

    def test_unknown_pair_falls_back(self):
        assert get_template("VATA_PITTA", "SUMMER") is DIET_TEMPLATES["TRIDOSHA"]["SPRING"]
        assert get_template("pitta", "winter") is DIET_TEMPLATES["PITTA"]["WINTER"]

    def test_fill_keeps_doctor_input(self):
        out = fill_plan_fields(constitution="KAPHA",
                               season="monsoon",
                               fields={"morning_meal": ["Warm water"],
                                       "guidelines": None})
        tpl = DIET_TEMPLATES["KAPHA"]["MONSOON"]
        assert out["season"] == "MONSOON"
        assert out["morning_meal"] == ["Warm water"]
        assert out["lunch_meal"] == tpl["lunch"]
        assert out["guidelines"] == "\n".join(tpl["guidelines"])


class TestDietApi:

    def test_create_fills_from_template(self, doctor_client, patient):
        resp = doctor_client.post("/api/diet/plans",
                                  json={"patient_id": patient.id,
                                        "constitution": "PITTA",
                                        "season": "SUMMER"})
        assert resp.status_code == 201, resp.text
        plan = resp.json()["plan"]
        assert plan["plan_number"].startswith("DP")
        assert plan["evening_meal"] == DIET_TEMPLATES["PITTA"]["SUMMER"]["evening"]

    def test_template_route(self, doctor_client):
        resp = doctor_client.get("/api/diet/templates",
                                 params={"constitution": "vata", "season": "autumn"})
        assert resp.status_code == 200
        assert resp.json()["template"] == DIET_TEMPLATES["VATA"]["AUTUMN"]

    def test_cancel_hides_from_active_list(self, doctor_client, patient):
        plan = doctor_client.post("/api/diet/plans",
                                  json={"patient_id": patient.id,
                                        "constitution": "VATA"}).json()["plan"]
        doctor_client.delete(f"/api/diet/plans/{plan['id']}")
        assert doctor_client.get("/api/diet/plans").json()["plans"] == []
        everything = doctor_client.get("/api/diet/plans", params={"status": "all"})
        assert everything.json()["plans"][0]["status"] == "CANCELLED"

    def test_invalid_constitution(self, doctor_client, patient):
        resp = doctor_client.post("/api/diet/plans",
                                  json={"patient_id": patient.id,
                                        "constitution": "AIR"})
        assert resp.status_code == 400

    def test_staff_blocked(self, staff_client):
        assert staff_client.get("/api/diet/templates").status_code == 403
