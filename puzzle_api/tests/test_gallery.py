import json
import unittest
from unittest.mock import MagicMock, patch

from puzzle_api.tests.support import ApiTestHarness


def _png(name, data=b"\x89PNG"):
    return ("files", (name, data, "image/png"))


class GalleryApiTests(unittest.TestCase):
    def setUp(self):
        self.harness = ApiTestHarness()
        self.client = self.harness.client
        self.storage = self.harness.storage
        ids = (f"puzzle-{n}" for n in range(1000, 2000))
        patcher = patch(
            "puzzle_api.gallery_routes._generate_gallery_puzzle_id",
            side_effect=lambda: next(ids),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def _create(self, files=(), **fields):
        data = {"name": "Cats", "desc": "Two cats", "pieces": "250", "level": "Medium", "tags": "a, b, c"}
        data.update(fields)
        return self.client.post("/api/puzzles", data=data, files=list(files) or None)

    def test_create_returns_201_with_parsed_tags_and_keys(self):
        response = self._create(files=[_png("one.png", b"1"), _png("two.png", b"2")])
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["id"], "puzzle-1000")
        self.assertEqual(payload["tags"], ["a", "b", "c"])
        self.assertEqual(payload["level"], "Medium")
        self.assertEqual(payload["pieces"], 250)
        self.assertEqual(payload["img"], ["puzzle-1000/one.png", "puzzle-1000/two.png"])

        blob = self.storage.get_blob("puzzle-1000/two.png")
        self.assertEqual(blob.data, b"2")
        self.assertEqual(blob.content_type, "image/png")

    def test_create_without_files(self):
        response = self._create(tags=" solo ,, ")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["img"], [])
        self.assertEqual(response.json()["tags"], ["solo"])

    def test_create_validates_name_and_level(self):
        self.assertEqual(self._create(name="").status_code, 400)
        self.assertEqual(self._create(level="Impossible").status_code, 400)
        self.assertEqual(self.harness.db.list_gallery_puzzles(), [])

    def test_list_and_get(self):
        self._create(name="First")
        self._create(name="Second")

        listed = self.client.get("/api/puzzles").json()
        self.assertEqual({p["name"] for p in listed}, {"First", "Second"})

        fetched = self.client.get("/api/puzzles/puzzle-1000")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["name"], "First")
        self.assertEqual(fetched.json()["tags"], ["a", "b", "c"])

    def test_get_unknown_is_plain_text_404(self):
        response = self.client.get("/api/puzzles/missing")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.text, "Not Found")
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))

    def test_update_appends_new_upload_to_existing_files(self):
        created = self._create(files=[_png("one.png")]).json()

        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={
                "name": "Cats v2",
                "desc": "Three cats",
                "pieces": "500",
                "level": "Hard",
                "tags": "x,y",
                "existingFiles": json.dumps(created["img"]),
            },
            files=[_png("two.png")],
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["img"]), len(created["img"]) + 1)
        self.assertEqual(payload["img"][-1], f"{created['id']}/two.png")

        stored = self.client.get(f"/api/puzzles/{created['id']}").json()
        self.assertEqual(stored["name"], "Cats v2")
        self.assertEqual(stored["level"], "Hard")
        self.assertEqual(stored["tags"], ["x", "y"])
        self.assertEqual(stored["img"], payload["img"])

    def test_update_can_drop_images_from_the_list(self):
        created = self._create(files=[_png("one.png"), _png("two.png")]).json()
        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={"name": "Cats", "existingFiles": json.dumps(created["img"][:1])},
        )
        self.assertEqual(response.json()["img"], created["img"][:1])

    def test_update_unknown_id_is_404_and_discards_uploads(self):
        response = self.client.put(
            "/api/puzzles/nope",
            data={"name": "Ghost", "existingFiles": "[]"},
            files=[_png("ghost.png")],
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.storage.stored_objects, {})

    def test_update_rejects_malformed_existing_files(self):
        created = self._create().json()
        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={"name": "Cats", "existingFiles": "not-json"},
        )
        self.assertEqual(response.status_code, 400)

    def test_delete_removes_blobs_and_row(self):
        created = self._create(files=[_png("one.png"), _png("two.png"), _png("three.png")]).json()
        self.assertEqual(len(self.storage.stored_objects), 3)

        response = self.client.delete(f"/api/puzzles/{created['id']}")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response.content, b"")
        self.assertEqual(self.storage.stored_objects, {})
        self.assertEqual(self.client.get(f"/api/puzzles/{created['id']}").status_code, 404)
        self.assertEqual(self.client.get("/api/puzzles").json(), [])

    def test_delete_unknown_id_is_still_204(self):
        self.assertEqual(self.client.delete("/api/puzzles/nope").status_code, 204)

    def test_delete_aborts_when_blob_delete_fails(self):
        created = self._create(files=[_png("one.png")]).json()
        self.storage.delete = MagicMock(side_effect=RuntimeError("bucket down"))

        response = self.client.delete(f"/api/puzzles/{created['id']}")
        self.assertEqual(response.status_code, 500)
        self.assertIsNotNone(self.harness.db.get_gallery_puzzle(created["id"]))

    def test_failed_insert_removes_uploaded_blobs(self):
        self.harness.db.insert_gallery_puzzle = MagicMock(side_effect=RuntimeError("db down"))
        response = self._create(files=[_png("one.png")])
        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.storage.stored_objects, {})

    def test_create_skips_empty_file_input(self):
        response = self._create(files=[("files", ("", b"", "application/octet-stream"))])
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["img"], [])
        self.assertEqual(self.storage.stored_objects, {})

    def test_update_skips_empty_file_input(self):
        created = self._create(files=[_png("one.png")]).json()
        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={"name": "Cats", "existingFiles": json.dumps(created["img"])},
            files=[("files", ("", b"", "application/octet-stream"))],
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["img"], created["img"])

    def test_duplicate_file_names_are_rejected(self):
        response = self._create(files=[_png("one.png", b"1"), _png("one.png", b"2")])
        self.assertEqual(response.status_code, 400)
        self.assertIn("one.png", response.json()["error"])
        self.assertEqual(self.storage.stored_objects, {})
        self.assertEqual(self.harness.db.list_gallery_puzzles(), [])

    def test_reuploading_existing_file_replaces_blob_without_duplicate_key(self):
        created = self._create(files=[_png("one.png", b"old")]).json()
        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={"name": "Cats", "existingFiles": json.dumps(created["img"])},
            files=[_png("one.png", b"new")],
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["img"], created["img"])
        self.assertEqual(self.storage.get_blob(created["img"][0]).data, b"new")

    def test_failed_update_keeps_reuploaded_existing_blob(self):
        created = self._create(files=[_png("one.png")]).json()
        key = created["img"][0]
        self.harness.db.update_gallery_puzzle = MagicMock(side_effect=RuntimeError("db down"))

        response = self.client.put(
            f"/api/puzzles/{created['id']}",
            data={"name": "Cats", "existingFiles": json.dumps([key])},
            files=[_png("one.png"), _png("two.png")],
        )
        self.assertEqual(response.status_code, 500)
        self.assertIn(key, self.storage.stored_objects)
        self.assertNotIn(f"{created['id']}/two.png", self.storage.stored_objects)
        self.assertEqual(self.harness.db.get_gallery_puzzle(created["id"]).img, [key])

    def test_image_endpoint_serves_blob(self):
        created = self._create(files=[_png("one.png", b"pixels")]).json()
        response = self.client.get(f"/api/images/{created['img'][0]}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"pixels")
        self.assertEqual(response.headers["content-type"], "image/png")

        self.assertEqual(self.client.get("/api/images/puzzle-1/none.png").status_code, 404)

    def test_unknown_api_path_is_404(self):
        self.assertEqual(self.client.get("/api/puzzles/a/b").status_code, 404)
        self.assertEqual(self.client.patch("/api/puzzles/a").status_code, 405)


if __name__ == "__main__":
    unittest.main()
