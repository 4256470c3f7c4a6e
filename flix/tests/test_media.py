from __future__ import annotations
import os
import time

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from flix.media import ByteRange, ChunkedUpload, RangeNotSatisfiable, cleanup_temp_folders, parse_range, safe_identifier
from flix.models import Movie
from .factories import TempMediaMixin, make_admin, make_movie, make_user


class ParseRangeTests(SimpleTestCase):
    def test_closed_range(self):
        self.assertEqual(parse_range("bytes=0-99", 1000), ByteRange(0, 99))

    def test_open_end_runs_to_last_byte(self):
        self.assertEqual(parse_range("bytes=500-", 1000), ByteRange(500, 999))

    def test_end_past_file_is_clamped(self):
        self.assertEqual(parse_range("bytes=900-5000", 1000), ByteRange(900, 999))

    def test_suffix_range(self):
        self.assertEqual(parse_range("bytes=-100", 1000), ByteRange(900, 999))

    def test_unsatisfiable_ranges(self):
        for header in ("bytes=1000-", "bytes=5-1", "bytes=-", "items=0-1", "bytes=abc"):
            with self.subTest(header=header):
                with self.assertRaises(RangeNotSatisfiable):
                    parse_range(header, 1000)

    def test_safe_identifier(self):
        self.assertEqual(safe_identifier("../../etc/passwd"), "etc_passwd")
        with self.assertRaises(ValueError):
            safe_identifier("..")


class StreamingTests(TempMediaMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.payload = bytes(range(256)) * 8
        self.movie = make_movie("Streamed", video_url="streamed")
        (self.movie_folder / "streamed.mp4").write_bytes(self.payload)
        self.url = reverse("flix:video-stream", kwargs={"pk": self.movie.pk})

    def read(self, response) -> bytes:
        return b"".join(response.streaming_content)

    def test_full_response_without_range(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "video/mp4")
        self.assertEqual(response["Content-Length"], str(len(self.payload)))
        self.assertEqual(self.read(response), self.payload)

    def test_partial_response(self):
        response = self.client.get(self.url, HTTP_RANGE="bytes=10-19")

        self.assertEqual(response.status_code, 206)
        self.assertEqual(response["Content-Range"], f"bytes 10-19/{len(self.payload)}")
        self.assertEqual(response["Accept-Ranges"], "bytes")
        self.assertEqual(response["Content-Length"], "10")
        self.assertEqual(self.read(response), self.payload[10:20])

    def test_open_ended_range(self):
        response = self.client.get(self.url, HTTP_RANGE="bytes=2000-")

        self.assertEqual(self.read(response), self.payload[2000:])

    def test_range_beyond_file(self):
        response = self.client.get(self.url, HTTP_RANGE=f"bytes={len(self.payload)}-")

        self.assertEqual(response.status_code, 416)
        self.assertEqual(response["Content-Range"], f"bytes */{len(self.payload)}")

    def test_series_are_read_from_series_folder(self):
        show = make_movie("Show", Movie.Type.SERIE, video_url="show")
        (self.series_folder / "show.webm").write_bytes(b"series-bytes")

        response = self.client.get(reverse("flix:video-stream", kwargs={"pk": show.pk}))

        self.assertEqual(self.read(response), b"series-bytes")

    def test_other_containers_are_served_as_mp4(self):
        clip = make_movie("Clip", video_url="clip")
        (self.movie_folder / "clip.mkv").write_bytes(b"mkv-bytes")
        url = reverse("flix:video-stream", kwargs={"pk": clip.pk})

        full = self.client.get(url)
        partial = self.client.get(url, HTTP_RANGE="bytes=0-2")

        self.assertEqual(full["Content-Type"], "video/mp4")
        self.assertEqual(partial["Content-Type"], "video/mp4")

    def test_missing_title_or_file(self):
        missing_title = self.client.get(reverse("flix:video-stream", kwargs={"pk": 9999}))
        no_file = make_movie("No file", video_url="nothing-here")
        missing_file = self.client.get(reverse("flix:video-stream", kwargs={"pk": no_file.pk}))

        self.assertEqual(missing_title.status_code, 404)
        self.assertEqual(missing_file.status_code, 404)
        self.assertEqual(missing_file.json(), {"error": "Video not found"})

    @override_settings(BILLBOARD_PREVIEW_BYTES=100)
    def test_billboard_is_capped(self):
        url = reverse("flix:video-billboard", kwargs={"pk": self.movie.pk})

        full = self.client.get(url)
        partial = self.client.get(url, HTTP_RANGE="bytes=50-")

        self.assertEqual(self.read(full), self.payload[:100])
        self.assertEqual(partial["Content-Range"], "bytes 50-99/100")


class ChunkUploadTests(TempMediaMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.url = reverse("flix:upload-chunk")

    def send(self, index: int, data: bytes, total: int = 2, **extra):
        payload = {
            "chunk": SimpleUploadedFile("blob", data),
            "chunk_index": index,
            "total_chunks": total,
            "file_name": "holiday.MP4",
            "file_id": "upload-1",
            "video_type": "Movie",
            "generated_id": "abc123",
        }
        payload.update(extra)
        return self.client.post(self.url, payload, format="multipart")

    def test_chunks_are_assembled_in_order(self):
        # Act: send the second chunk first
        first = self.send(1, b"world")
        second = self.send(0, b"hello ")

        # Assert
        self.assertEqual(first.data, {"success": True, "chunk_index": 1, "completed": False})
        self.assertTrue(second.data["completed"])
        self.assertEqual(second.data["video_id"], "abc123")
        target = self.movie_folder / "abc123.mp4"
        self.assertEqual(target.read_bytes(), b"hello world")
        self.assertEqual(list((self.movie_folder / "temp").iterdir()), [])

    def test_series_chunks_go_to_series_folder(self):
        response = self.send(0, b"x", total=1, video_type="Serie")

        self.assertTrue(response.data["completed"])
        self.assertTrue((self.series_folder / "abc123.mp4").exists())

    def test_missing_parameters(self):
        response = self.client.post(self.url, {"chunk_index": 0}, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {"error": "Missing parameters"})

    def test_chunk_index_out_of_range(self):
        response = self.send(5, b"x")

        self.assertEqual(response.data, {"error": "Invalid chunk index"})

    def test_regular_users_cannot_upload(self):
        self.client.force_authenticate(make_user())

        response = self.send(0, b"x", total=1)

        self.assertEqual(response.status_code, 403)

    def test_single_upload(self):
        response = self.client.post(
            reverse("flix:upload-video"),
            {"video": SimpleUploadedFile("My Clip.mov", b"clip")},
            format="multipart",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual((self.movie_folder / "My_Clip.mov").read_bytes(), b"clip")

    def test_cleanup_removes_only_stale_chunks(self):
        temp = self.movie_folder / "temp"
        temp.mkdir()
        stale = temp / "old_0"
        fresh = temp / "new_0"
        stale.write_bytes(b"old")
        fresh.write_bytes(b"new")
        two_hours_ago = time.time() - 2 * 60 * 60
        os.utime(stale, (two_hours_ago, two_hours_ago))

        removed = cleanup_temp_folders(60)

        self.assertEqual(removed, [stale])
        self.assertTrue(fresh.exists())

    def test_upload_object_rejects_unknown_extension(self):
        with self.assertRaisesMessage(ValueError, "Unsupported file type"):
            ChunkedUpload("id", "notes.txt", 1)
