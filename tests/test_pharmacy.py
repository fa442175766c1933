"""Medicine stock movements, prescriptions and dispensing."""


def _medicine(client, name="Ashwagandha Churna", stock=10, **extra):
    body = {"name": name, "current_stock": stock, "reorder_level": 5}
    body.update(extra)
    resp = client.post("/api/medicines", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _prescription(client, patient_id, lines):
    resp = client.post("/api/prescriptions",
                       json={"patient_id": patient_id,
                             "chief_complaints": "Joint pain",
                             "medicines": lines})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCategories:

    def test_duplicate_name_case_insensitive(self, owner_client):
        assert owner_client.post("/api/categories",
                                 json={"name": "Arthritis"}).status_code == 201
        resp = owner_client.post("/api/categories", json={"name": "arthritis"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Category already exists"

    def test_medicine_count(self, owner_client):
        cat = owner_client.post("/api/categories", json={"name": "Digestion"}).json()
        _medicine(owner_client, category_ids=[cat["id"]])
        cats = owner_client.get("/api/categories").json()["categories"]
        assert cats[0]["medicine_count"] == 1


class TestStock:

    def test_initial_stock_is_recorded(self, owner_client):
        med = _medicine(owner_client)
        assert med["stock_status"] == "IN_STOCK"
        detail = owner_client.get(f"/api/medicines/{med['id']}").json()
        assert len(detail["transactions"]) == 1
        assert detail["transactions"][0]["reason"] == "Initial Stock"
        assert detail["transactions"][0]["balance_after"] == 10

    def test_out_cannot_go_negative(self, owner_client):
        med = _medicine(owner_client)
        resp = owner_client.post(f"/api/medicines/{med['id']}/stock",
                                 json={"type": "OUT", "quantity": 11})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Insufficient stock"

    def test_adjustment_sets_level(self, owner_client):
        med = _medicine(owner_client)
        resp = owner_client.post(f"/api/medicines/{med['id']}/stock",
                                 json={"type": "ADJUSTMENT", "quantity": 3,
                                       "reason": "Stock count"})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["medicine"]["current_stock"] == 3
        assert body["medicine"]["stock_status"] == "LOW_STOCK"
        assert body["transaction"]["quantity"] == -7
        assert body["transaction"]["balance_after"] == 3

    def test_low_stock_filter(self, owner_client):
        _medicine(owner_client, name="Plenty", stock=50)
        _medicine(owner_client, name="Nearly gone", stock=2)
        resp = owner_client.get("/api/medicines", params={"stock_status": "low"})
        names = [m["name"] for m in resp.json()["medicines"]]
        assert names == ["Nearly gone"]

    def test_blank_barcodes_do_not_collide(self, owner_client):
        _medicine(owner_client, name="A", barcode="")
        _medicine(owner_client, name="B", barcode="  ")

    def test_duplicate_barcode(self, owner_client):
        _medicine(owner_client, name="A", barcode="890100")
        resp = owner_client.post("/api/medicines",
                                 json={"name": "B", "barcode": "890100"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Barcode already in use"


class TestBulkImport:

    def test_rows_are_reported_individually(self, owner_client):
        _medicine(owner_client, name="Existing", barcode="890100")
        cat = owner_client.post("/api/categories", json={"name": "Skin"}).json()
        rows = [
            {"name": "Neem Capsule", "current_stock": 40, "category_ids": [cat["id"]]},
            {"name": "Brahmi Ghrita", "barcode": "890200"},
            {"name": "Clash", "barcode": "890100"},
            {"name": "Twin", "barcode": "890200"},
            {"name": "Bad Category", "category_ids": [999]},
            {"name": "Negative", "current_stock": -1},
            {"generic_name": "no name"},
        ]
        resp = owner_client.post("/api/medicines/bulk", json={"medicines": rows})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["total"] == 7
        assert body["message"] == "Successfully created 2 medicines"
        assert [s["name"] for s in body["success"]] == ["Neem Capsule", "Brahmi Ghrita"]

        errors = {f["name"]: f["error"] for f in body["failed"]}
        assert errors["Clash"] == "Barcode already in use"
        assert errors["Twin"] == "Barcode already in use"
        assert errors["Bad Category"] == "Invalid category"
        assert errors["Negative"].startswith("current_stock:")
        assert errors["Row 7"].startswith("name:")

        neem = owner_client.get(f"/api/medicines/{body['success'][0]['id']}").json()
        assert neem["current_stock"] == 40
        assert neem["transactions"][0]["reason"] == "Bulk Upload - Initial Stock"
        assert [c["name"] for c in neem["categories"]] == ["Skin"]

    def test_empty_batch(self, owner_client):
        resp = owner_client.post("/api/medicines/bulk", json={"medicines": []})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No medicines provided"

    def test_patients_refused(self, portal_client):
        resp = portal_client.post("/api/medicines/bulk",
                                  json={"medicines": [{"name": "x"}]})
        assert resp.status_code == 403


class TestByCategory:

    def test_stock_labels(self, staff_client):
        cat = staff_client.post("/api/categories", json={"name": "Joint Care"}).json()
        other = staff_client.post("/api/categories", json={"name": "Sleep"}).json()
        _medicine(staff_client, name="Guggulu", stock=20, category_ids=[cat["id"]])
        _medicine(staff_client, name="Bala Taila", stock=3, category_ids=[cat["id"]])
        _medicine(staff_client, name="Dashamoola", stock=0, category_ids=[cat["id"]])
        _medicine(staff_client, name="Jatamansi", category_ids=[other["id"]])

        resp = staff_client.get(f"/api/medicines/by-category/{cat['id']}")
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["category"]["name"] == "Joint Care"
        meds = {m["name"]: m for m in body["medicines"]}
        assert list(meds) == ["Bala Taila", "Dashamoola", "Guggulu"]
        assert meds["Guggulu"]["stock_label"] == "20 in stock"
        assert meds["Bala Taila"]["stock_label"] == "Low: 3"
        assert meds["Dashamoola"]["stock_label"] == "Out of stock"
        assert meds["Dashamoola"]["available"] is False
        assert meds["Guggulu"]["available"] is True

    def test_unknown_category(self, staff_client):
        resp = staff_client.get("/api/medicines/by-category/999")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Category not found"


class TestDispense:

    def test_dispense_moves_stock(self, doctor_client, staff_client, patient):
        med = _medicine(doctor_client)
        rx = _prescription(doctor_client, patient.id,
                           [{"medicine_id": med["id"], "quantity_needed": 3},
                            {"medicine_id": med["id"], "quantity_needed": 1}])
        assert rx["status"] == "DRAFT"

        resp = staff_client.post(f"/api/prescriptions/{rx['id']}/dispense")
        assert resp.status_code == 200, resp.text
        assert resp.json()["status"] == "DISPENSED"

        detail = doctor_client.get(f"/api/medicines/{med['id']}").json()
        assert detail["current_stock"] == 6
        latest = detail["transactions"][0]
        assert latest["type"] == "OUT"
        assert latest["quantity"] == -4
        assert latest["reason"] == "Prescription Dispensed"

    def test_second_dispense_rejected(self, doctor_client, patient):
        med = _medicine(doctor_client)
        rx = _prescription(doctor_client, patient.id,
                           [{"medicine_id": med["id"], "quantity_needed": 1}])
        doctor_client.post(f"/api/prescriptions/{rx['id']}/dispense")
        resp = doctor_client.post(f"/api/prescriptions/{rx['id']}/dispense")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Prescription has already been dispensed"

    def test_shortage_aborts_everything(self, doctor_client, patient):
        enough = _medicine(doctor_client, name="Enough", stock=10)
        short = _medicine(doctor_client, name="Short", stock=2)
        rx = _prescription(doctor_client, patient.id,
                           [{"medicine_id": enough["id"], "quantity_needed": 5},
                            {"medicine_id": short["id"], "quantity_needed": 3}])

        resp = doctor_client.post(f"/api/prescriptions/{rx['id']}/dispense")
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Insufficient stock for one or more medicines"
        assert body["details"]["stock_issues"] == [{
            "medicine_id": short["id"],
            "medicine_name": "Short",
            "required": 3,
            "available": 2,
        }]
        untouched = doctor_client.get(f"/api/medicines/{enough['id']}").json()
        assert untouched["current_stock"] == 10

    def test_dispensed_prescription_is_frozen(self, doctor_client, patient):
        med = _medicine(doctor_client)
        rx = _prescription(doctor_client, patient.id,
                           [{"medicine_id": med["id"]}])
        doctor_client.post(f"/api/prescriptions/{rx['id']}/dispense")
        resp = doctor_client.put(f"/api/prescriptions/{rx['id']}",
                                 json={"diagnosis": "Amavata"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Dispensed prescriptions cannot be edited"

    def test_medicine_in_use_cannot_be_deleted(self, doctor_client, patient):
        med = _medicine(doctor_client)
        _prescription(doctor_client, patient.id, [{"medicine_id": med["id"]}])
        resp = doctor_client.delete(f"/api/medicines/{med['id']}")
        assert resp.status_code == 400


class TestPrescriptionRoutes:

    def test_unknown_medicine(self, doctor_client, patient):
        resp = doctor_client.post("/api/prescriptions",
                                  json={"patient_id": patient.id,
                                        "chief_complaints": "Cough",
                                        "medicines": [{"medicine_id": 999}]})
        assert resp.status_code == 400

    def test_numbers_increase(self, doctor_client, patient):
        first = _prescription(doctor_client, patient.id, [])
        second = _prescription(doctor_client, patient.id, [])
        assert second["prescription_no"] == first["prescription_no"] + 1

    def test_stats(self, doctor_client, patient):
        rx = _prescription(doctor_client, patient.id, [])
        doctor_client.put(f"/api/prescriptions/{rx['id']}",
                          json={"status": "FINALIZED"})
        stats = doctor_client.get("/api/prescriptions/stats").json()
        assert stats["overview"]["total"] == 1
        assert stats["overview"]["pending_dispense"] == 1
        assert stats["status_breakdown"]["finalized"] == 1

    def test_staff_cannot_write_prescriptions(self, staff_client, patient):
        resp = staff_client.post("/api/prescriptions",
                                 json={"patient_id": patient.id,
                                       "chief_complaints": "Fever"})
        assert resp.status_code == 403
