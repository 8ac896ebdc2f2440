"""
Quantity API tests — routers/quantity.py via the FastAPI test client.

Tests:
1-5.  POST /api/quantity/calculate (per method, warnings, rejections)
6-8.  POST /api/quantity/items/validate and /items/verify
9-10. POST /api/quantity/text-width
11.   GET /api/quantity/field-constraints
12.   GET /health
"""


def _pitch_request(**overrides):
    body = {
        "method": "PITCH",
        "params": {
            "range_length": 10,
            "end_length1": 1,
            "end_length2": 1,
            "pitch_length": 1,
            "length": 2,
            "weight": 3,
        },
        "adjustment_factor": 1.0,
        "rounding_unit": 0.01,
    }
    body.update(overrides)
    return body


# ============================================================
# Calculate
# ============================================================

def test_calculate_area_volume(client):
    response = client.post("/api/quantity/calculate", json={
        "method": "AREA_VOLUME",
        "params": {"width": 10, "depth": 5},
        "adjustment_factor": 1.2,
        "rounding_unit": 0.01,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["raw_value"] == 50
    assert abs(data["adjusted_value"] - 60) < 1e-9
    assert abs(data["final_value"] - 60) < 1e-9
    assert data["formula"] == "10 x 5 = 50"
    assert data["warnings"] == []


def test_calculate_pitch(client):
    response = client.post("/api/quantity/calculate", json=_pitch_request())
    assert response.status_code == 200
    data = response.json()
    assert data["raw_value"] == 54
    assert data["final_value"] == 54
    assert data["formula"].startswith("floor((10 - 1 - 1) / 1) + 1 = 9")


def test_calculate_standard_negative_quantity_warns(client):
    response = client.post("/api/quantity/calculate", json={
        "method": "STANDARD",
        "quantity": -2.5,
        "adjustment_factor": 1.0,
        "rounding_unit": 1,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["final_value"] == -2
    assert data["warnings"] == ["negative quantity entered, continue?"]


def test_calculate_rejects_invalid_pitch(client):
    response = client.post("/api/quantity/calculate", json=_pitch_request(
        params={"range_length": 10, "pitch_length": 0},
    ))
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert "end length 1 is required" in detail["errors"]
    assert "pitch length must be greater than 0" in detail["errors"]


def test_calculate_rejects_non_positive_rounding_unit(client):
    response = client.post("/api/quantity/calculate", json=_pitch_request(rounding_unit=0))
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["rounding unit must be positive"]


def test_calculate_standard_requires_quantity(client):
    response = client.post("/api/quantity/calculate", json={"method": "STANDARD"})
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["quantity is required"]


# ============================================================
# Item validation
# ============================================================

def test_validate_item_reports_field_errors(client):
    response = client.post("/api/quantity/items/validate", json={
        "major_category": "建築工事",
        "work_type": "あいうえおかきくけ",
        "unit": "m3",
        "adjustment_factor": 10.5,
        "quantity": 5,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is False
    assert set(data["field_errors"]) == {"work_type", "adjustment_factor"}


def test_verify_item_passes(client):
    response = client.post("/api/quantity/items/verify", json={
        "major_category": "建築工事",
        "name": "普通コンクリート",
        "unit": "m3",
        "adjustment_factor": 1.0,
        "rounding_unit": 0.01,
        "quantity": 12.5,
    })
    assert response.status_code == 200
    assert response.json() == {"is_valid": True}


def test_verify_item_problem_details(client):
    response = client.post("/api/quantity/items/verify", json={
        "unit": "平方メートル",
        "rounding_unit": 1000,
    })
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "FIELD_VALIDATION_ERROR"
    assert detail["status"] == 400
    fields = {e["field"]: e for e in detail["field_errors"]}
    assert set(fields) == {"unit", "rounding_unit"}
    assert fields["rounding_unit"]["value"] == 1000


# ============================================================
# Text width
# ============================================================

def test_text_width(client):
    response = client.post("/api/quantity/text-width",
                           json={"value": "建築A", "field_name": "work_type"})
    assert response.status_code == 200
    assert response.json() == {"width": 5, "remaining": 11, "is_valid": True, "error": None}

    response = client.post("/api/quantity/text-width",
                           json={"value": "立方メートル", "field_name": "unit"})
    data = response.json()
    assert data["remaining"] == -6
    assert data["is_valid"] is False
    assert "unit" in data["error"]


def test_text_width_unknown_field(client):
    response = client.post("/api/quantity/text-width",
                           json={"value": "x", "field_name": "colour"})
    assert response.status_code == 404


# ============================================================
# Constraints / health
# ============================================================

def test_field_constraints(client):
    response = client.get("/api/quantity/field-constraints")
    assert response.status_code == 200
    data = response.json()
    assert data["text"]["unit"] == {"zenkaku": 3, "hankaku": 6}
    assert data["numeric"]["rounding_unit"] == {"min": 0.01, "max": 999.99}
    assert data["dimension"]["min"] == 0.01
    assert data["defaults"]["adjustment_factor"] == 1.0


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
