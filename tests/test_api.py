"""
Tests for the REST API

These tests drive the FastAPI application against a fresh in-memory
SQLite database per test, covering the generate -> calculate flow,
reports, the error envelope and cascading deletes.

Run with: pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api.database import SEED_CLASSIFICATIONS, build_engine, get_db, init_database
from api.main import app

API = "/api/v1"
WINDOW = {"start_date": "2024-01-01T00:00:00Z", "end_date": "2024-01-01T01:00:00Z"}
BASELINE_WINDOW = {"start_date": "2024-01-08T00:00:00Z", "end_date": "2024-01-08T01:00:00Z"}


class ApiTestCase:
    """Shared setup: in-memory database with seeded classifications."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = build_engine("sqlite://")
        init_database(bind=self.engine)
        TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        def override_get_db():
            db = TestingSession()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def teardown_method(self):
        """Tear down test fixtures."""
        app.dependency_overrides.clear()
        self.engine.dispose()

    def generate(self, classification_id=1, base_value=10.0, window=WINDOW, **extra):
        payload = {
            "classification_id": classification_id,
            "interval_minutes": 15,
            "base_value": base_value,
            "variance": 0.0,
            **window,
        }
        payload.update(extra)
        return self.client.post(f"{API}/metering-data/generate", json=payload)

    def calculate(self, formula="TotalEnergy", classification_id=1, baseline=None):
        payload = {
            "name": "Test EnPI",
            "formula": formula,
            "classification_id": classification_id,
            **WINDOW,
        }
        if baseline:
            payload["baseline_start_date"] = baseline["start_date"]
            payload["baseline_end_date"] = baseline["end_date"]
        return self.client.post(f"{API}/enpi/calculate", json=payload)

    def assert_error(self, response, status_code, kind):
        assert response.status_code == status_code
        body = response.json()
        assert body["error"] is True
        assert body["kind"] == kind
        assert body["status_code"] == status_code
        assert "timestamp" in body
        return body


class TestSystemEndpoints(ApiTestCase):
    """Test root, info and liveness endpoints."""

    def test_root(self):
        """Root describes the API."""
        response = self.client.get("/")

        assert response.status_code == 200
        assert response.json()["api_base"] == "/api/v1"

    def test_liveness(self):
        """Liveness always answers."""
        response = self.client.get("/live")

        assert response.json() == {"alive": True}

    def test_info_lists_formulas_and_reports(self):
        """Info advertises the accepted selectors."""
        body = self.client.get("/info").json()

        assert body["enpi_formulas"] == ["TotalEnergy", "EnergyPerHour", "MaxPower", "AvgPower"]
        assert "classification" in body["pareto"]["group_by"]
        assert "/api/v1/reports/energy-flow" in body["reports"]


class TestClassificationEndpoints(ApiTestCase):
    """Test classification management."""

    def test_seeded_classifications(self):
        """Three default classifications exist."""
        response = self.client.get(f"{API}/classifications")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert [c["name"] for c in body["classifications"]] == [
            "Main Building", "Server Room", "Production Line A"
        ]

    def test_seeds_take_ids_from_the_database(self):
        """Seeds carry no explicit ids, so new rows continue the sequence."""
        assert all("id" not in seed for seed in SEED_CLASSIFICATIONS)

        seeded = self.client.get(f"{API}/classifications").json()["classifications"]
        created = self.client.post(
            f"{API}/classifications", json={"name": "Compressor Hall", "type": "Equipment"}
        )

        assert [c["id"] for c in seeded] == [1, 2, 3]
        assert created.status_code == 201
        assert created.json()["id"] == 4

    def test_create_and_get(self):
        """A created classification can be fetched."""
        created = self.client.post(
            f"{API}/classifications", json={"name": "Compressor Hall", "type": "Equipment"}
        )

        assert created.status_code == 201
        new_id = created.json()["id"]
        fetched = self.client.get(f"{API}/classifications/{new_id}")
        assert fetched.json()["name"] == "Compressor Hall"

    def test_update(self):
        """Classifications can be renamed."""
        response = self.client.put(
            f"{API}/classifications/2", json={"name": "Data Centre", "type": "Equipment"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Data Centre"

    def test_unknown_classification(self):
        """Unknown ids return the error envelope with 404."""
        response = self.client.get(f"{API}/classifications/99")

        body = self.assert_error(response, 404, "classification_not_found")
        assert body["context"]["classification_id"] == 99

    def test_empty_name_rejected(self):
        """Request validation still uses 422."""
        response = self.client.post(f"{API}/classifications", json={"name": ""})

        assert response.status_code == 422

    def test_delete_cascades(self):
        """Deleting a classification removes its readings and EnPIs."""
        self.generate(classification_id=1)
        self.generate(classification_id=2)
        assert self.calculate().status_code == 201

        response = self.client.delete(f"{API}/classifications/1")

        assert response.status_code == 204
        remaining = self.client.get(f"{API}/metering-data").json()
        assert remaining["count"] == 5
        assert all(r["classification_id"] == 2 for r in remaining["readings"])
        assert self.client.get(f"{API}/enpi").json()["count"] == 0


class TestMeteringEndpoints(ApiTestCase):
    """Test reading storage, generation and export."""

    def test_generate(self):
        """One night hour on a Monday yields five flat readings."""
        response = self.generate()

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["readings_generated"] == 5
        for reading in body["readings"]:
            assert reading["id"] is not None
            assert reading["energy_value"] == pytest.approx(3.0)
            assert reading["power"] == pytest.approx(12.0)

    def test_generate_invalid_classification_id(self):
        """Non-positive ids are invalid arguments."""
        response = self.generate(classification_id=0)

        body = self.assert_error(response, 400, "invalid_argument")
        assert body["message"] == "Invalid Classification ID"

    def test_generate_unknown_classification(self):
        """Positive but unknown ids are not found."""
        response = self.generate(classification_id=42)

        self.assert_error(response, 404, "classification_not_found")

    def test_generate_zero_interval(self):
        """Zero interval is an invalid argument."""
        response = self.generate(interval_minutes=0)

        self.assert_error(response, 400, "invalid_argument")

    def test_generate_inverted_window(self):
        """End before start is an invalid argument."""
        response = self.generate(
            window={"start_date": WINDOW["end_date"], "end_date": WINDOW["start_date"]}
        )

        self.assert_error(response, 400, "invalid_argument")

    def test_list_filters_inclusive_window(self):
        """Both ends of the filter window are included."""
        self.generate()

        response = self.client.get(
            f"{API}/metering-data",
            params={
                "classification_id": 1,
                "start_date": "2024-01-01T00:15:00Z",
                "end_date": "2024-01-01T00:45:00Z",
            },
        )

        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_record_single_reading(self):
        """A reading can be recorded directly."""
        response = self.client.post(
            f"{API}/metering-data",
            json={
                "timestamp": "2024-01-01T10:00:00Z",
                "energy_value": 4.5,
                "power": 18.0,
                "classification_id": 3,
            },
        )

        assert response.status_code == 201
        assert response.json()["energy_value"] == pytest.approx(4.5)

    def test_negative_energy_rejected(self):
        """Negative energy fails request validation."""
        response = self.client.post(
            f"{API}/metering-data",
            json={"energy_value": -1.0, "power": 0.0, "classification_id": 1},
        )

        assert response.status_code == 422

    def test_export_csv(self):
        """Export returns CSV with classification names."""
        self.generate()

        response = self.client.get(f"{API}/metering-data/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0] == "Timestamp,Classification,Energy (kWh),Power (kW),ClassificationId"
        assert len(lines) == 6
        assert "Main Building" in lines[1]

    def test_export_empty(self):
        """Exporting nothing is a no-data error."""
        response = self.client.get(f"{API}/metering-data/export")

        self.assert_error(response, 400, "no_data")

    def test_export_unknown_classification(self):
        """Filtering on an unknown classification is not found."""
        response = self.client.get(
            f"{API}/metering-data/export", params={"classification_id": 99}
        )

        self.assert_error(response, 404, "classification_not_found")

    def test_views_accept_reading_recorded_now(self):
        """A reading stamped with sub-second precision mixes with generated ones."""
        self.generate()
        recorded = self.client.post(
            f"{API}/metering-data",
            json={"energy_value": 1.0, "power": 4.0, "classification_id": 1},
        )
        assert recorded.status_code == 201

        for path in ("reports/heatmap", "reports/weekday", "reports/daily-trend"):
            assert self.client.get(f"{API}/{path}").status_code == 200, path

        export = self.client.get(f"{API}/metering-data/export")
        assert export.status_code == 200
        assert len(export.text.strip().splitlines()) == 7


class TestEnPIEndpoints(ApiTestCase):
    """Test EnPI calculation and history."""

    def test_total_energy_without_baseline(self):
        """Five readings of 3 kWh total 15 kWh."""
        self.generate()

        response = self.calculate()

        assert response.status_code == 201
        body = response.json()
        assert body["formula"] == "TotalEnergy"
        assert body["current_value"] == pytest.approx(15.0)
        assert body["baseline_value"] == 0.0
        assert body["baseline_status"] == "not_requested"
        assert body["improvement_percent"] is None

    def test_measured_baseline(self):
        """A higher baseline gives a positive improvement."""
        self.generate(base_value=10.0)
        self.generate(base_value=20.0, window=BASELINE_WINDOW)

        body = self.calculate(baseline=BASELINE_WINDOW).json()

        assert body["baseline_status"] == "measured"
        assert body["baseline_value"] == pytest.approx(30.0)
        assert body["improvement_percent"] == pytest.approx(50.0)

    def test_empty_baseline(self):
        """A baseline window with no readings is reported as no_data."""
        self.generate()

        body = self.calculate(baseline=BASELINE_WINDOW).json()

        assert body["baseline_status"] == "no_data"
        assert body["baseline_value"] == 0.0
        assert body["improvement_percent"] is None

    def test_max_and_avg_power(self):
        """Flat readings have equal peak and mean power."""
        self.generate()

        max_power = self.calculate(formula="MaxPower").json()["current_value"]
        avg_power = self.calculate(formula="AvgPower").json()["current_value"]

        assert max_power == pytest.approx(12.0)
        assert avg_power == pytest.approx(12.0)

    def test_no_data(self):
        """No readings in the window is a 400."""
        response = self.calculate()

        body = self.assert_error(response, 400, "no_data")
        assert body["message"] == "No metering data found for the specified criteria"

    def test_invalid_formula(self):
        """Unknown formula is a 400."""
        self.generate()

        response = self.calculate(formula="Median")

        body = self.assert_error(response, 400, "invalid_formula")
        assert body["context"]["formula"] == "Median"

    def test_unknown_classification(self):
        """Unknown classification is a 404."""
        response = self.calculate(classification_id=77)

        self.assert_error(response, 404, "classification_not_found")

    def test_history(self):
        """Every calculation is stored as a new EnPI."""
        self.generate()
        first = self.calculate().json()
        self.calculate(formula="AvgPower")

        listing = self.client.get(f"{API}/enpi").json()
        fetched = self.client.get(f"{API}/enpi/{first['id']}").json()

        assert listing["count"] == 2
        assert fetched["current_value"] == pytest.approx(15.0)

    def test_get_unknown_enpi(self):
        """Unknown EnPI ids use the same envelope."""
        response = self.client.get(f"{API}/enpi/123")

        self.assert_error(response, 404, "http_error")

    def test_delete_enpi(self):
        """EnPIs can be deleted once."""
        self.generate()
        enpi_id = self.calculate().json()["id"]

        assert self.client.delete(f"{API}/enpi/{enpi_id}").status_code == 204
        assert self.client.delete(f"{API}/enpi/{enpi_id}").status_code == 404


class TestReportEndpoints(ApiTestCase):
    """Test report aggregation over stored readings."""

    def test_pareto_by_classification(self):
        """Larger consumers come first."""
        self.generate(classification_id=1, base_value=10.0)
        self.generate(classification_id=2, base_value=30.0)

        response = self.client.get(f"{API}/reports/pareto")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == pytest.approx(60.0)
        assert [e["key"] for e in body["entries"]] == ["Server Room", "Main Building"]
        assert [e["percent_of_total"] for e in body["entries"]] == pytest.approx([75.0, 25.0])
        assert body["entries"][-1]["cumulative_percent"] == pytest.approx(100.0)

    def test_pareto_by_hour_power(self):
        """Hour grouping with peak power."""
        self.generate()

        body = self.client.get(
            f"{API}/reports/pareto", params={"group_by": "hourOfDay", "metric": "power"}
        ).json()

        assert [e["key"] for e in body["entries"]] == ["00:00", "01:00"]
        assert body["entries"][0]["value"] == pytest.approx(12.0)

    def test_pareto_unknown_group(self):
        """Unknown grouping is a 400."""
        self.generate()

        response = self.client.get(f"{API}/reports/pareto", params={"group_by": "month"})

        self.assert_error(response, 400, "invalid_argument")

    def test_summary(self):
        """Summary over one classification."""
        self.generate()

        body = self.client.get(f"{API}/reports/summary", params={"classification_id": 1}).json()

        assert body["total_energy"] == pytest.approx(15.0)
        assert body["reading_count"] == 5

    def test_summary_empty(self):
        """Summary over nothing is a no-data error."""
        response = self.client.get(f"{API}/reports/summary")

        self.assert_error(response, 400, "no_data")

    def test_heatmap(self):
        """Monday midnight carries the generated power."""
        self.generate()

        body = self.client.get(f"{API}/reports/heatmap").json()

        assert body["days"][0] == "Monday"
        assert body["values"][0][0] == pytest.approx(12.0)
        assert body["values"][1][0] == 0.0

    def test_weekday_profile(self):
        """Monday mean energy per reading."""
        self.generate()

        body = self.client.get(f"{API}/reports/weekday").json()

        assert body["profile"]["Monday"] == pytest.approx(3.0)
        assert body["profile"]["Tuesday"] == 0.0

    def test_daily_trend(self):
        """One day with the generated energy and power."""
        self.generate()

        body = self.client.get(f"{API}/reports/daily-trend", params={"classification_id": 1}).json()

        assert body["count"] == 1
        assert body["days"][0]["date"] == "2024-01-01"
        assert body["days"][0]["energy"] == pytest.approx(15.0)
        assert body["days"][0]["avg_power"] == pytest.approx(12.0)
        assert body["days"][0]["reading_count"] == 5

    def test_comparison(self):
        """Classifications ranked by energy with peak and mean power."""
        self.generate(classification_id=1)
        self.generate(classification_id=2, base_value=20.0)

        body = self.client.get(f"{API}/reports/comparison").json()

        assert body["count"] == 2
        first, second = body["classifications"]
        assert first["classification"] == "Server Room"
        assert first["energy"] == pytest.approx(30.0)
        assert first["max_power"] == pytest.approx(24.0)
        assert second["classification_id"] == 1
        assert second["avg_power"] == pytest.approx(12.0)

    def test_energy_flow(self):
        """Flow runs from the total through types to classifications."""
        self.generate(classification_id=1)
        self.generate(classification_id=2, base_value=20.0)

        body = self.client.get(f"{API}/reports/energy-flow").json()

        assert body["total"] == pytest.approx(45.0)
        assert body["nodes"] == ["Total", "Facility", "Main Building", "Equipment", "Server Room"]
        assert body["links"][0] == {"source": 0, "target": 1, "value": pytest.approx(15.0)}
        assert body["links"][2] == {"source": 0, "target": 3, "value": pytest.approx(30.0)}

    def test_new_reports_empty(self):
        """Each new report rejects an empty selection."""
        for path in ("daily-trend", "comparison", "energy-flow"):
            self.assert_error(self.client.get(f"{API}/reports/{path}"), 400, "no_data")

    def test_unknown_classification_filter(self):
        """Filtering on an unknown classification is not found, not empty."""
        for path in ("summary", "heatmap", "daily-trend"):
            response = self.client.get(f"{API}/reports/{path}", params={"classification_id": 99})
            body = self.assert_error(response, 404, "classification_not_found")
            assert body["context"]["classification_id"] == 99

    def test_inverted_filter_window(self):
        """Report filters reject end before start."""
        response = self.client.get(
            f"{API}/reports/summary",
            params={"start_date": WINDOW["end_date"], "end_date": WINDOW["start_date"]},
        )

        self.assert_error(response, 400, "invalid_argument")
