"""
Tests for progress status and the progress WebSocket.

Dependencies: pytest, fastapi
System role: Progress API verification
"""

from uuid import uuid4

from csv_migrator.core.progress import build_progress_event


class TestProgressStatus:
    """Test GET /progress/status/{job_id}."""

    def test_pending_job_should_report_zero(self, client, upload):
        job_id = upload("a.csv", rows=3).json()["jobId"]

        response = client.get(f"/api/v1/progress/status/{job_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["jobId"] == job_id
        assert data["percentage"] == 0
        assert data["status"] == "PENDING"

    def test_completed_job_should_report_hundred(self, client, runtime, upload):
        job_id = upload("a.csv", rows=3).json()["jobId"]
        client.portal.call(runtime.queue.run_once, runtime.process_job)

        data = client.get(f"/api/v1/progress/status/{job_id}").json()

        assert (data["percentage"], data["status"]) == (100, "COMPLETED")

    def test_unknown_job_should_be_not_found(self, client):
        assert client.get(f"/api/v1/progress/status/{uuid4()}").status_code == 404


class TestProgressWebSocket:
    """Test WS /progress/ws."""

    def test_connect_should_send_greeting(self, client):
        with client.websocket_connect("/api/v1/progress/ws") as websocket:
            message = websocket.receive_json()

        assert message == {"type": "connected", "message": "Connected to progress updates"}

    def test_emitted_event_should_reach_client(self, client, runtime):
        with client.websocket_connect("/api/v1/progress/ws") as websocket:
            websocket.receive_json()
            event = build_progress_event("job-1", 50, 100, "RUNNING")

            # Act
            delivered = client.portal.call(runtime.broadcaster.emit, event)
            message = websocket.receive_json()

        # Assert
        assert delivered == 1
        assert message["type"] == "progress"
        assert message["jobId"] == "job-1"
        assert message["percentage"] == 50

    def test_processed_job_should_stream_to_completion(self, client, runtime, upload):
        job_id = upload("a.csv", rows=12).json()["jobId"]

        with client.websocket_connect("/api/v1/progress/ws") as websocket:
            websocket.receive_json()

            # Act
            client.portal.call(runtime.queue.run_once, runtime.process_job)
            messages = [websocket.receive_json() for _ in range(4)]

        # Assert
        assert all(m["jobId"] == job_id for m in messages)
        assert [m["status"] for m in messages][-1] == "COMPLETED"
        percentages = [m["percentage"] for m in messages]
        assert percentages == sorted(percentages)
        assert percentages[-1] == 100

    def test_disconnect_should_unsubscribe(self, client, runtime):
        with client.websocket_connect("/api/v1/progress/ws") as websocket:
            websocket.receive_json()
            assert runtime.broadcaster.subscriber_count == 1

        client.portal.call(runtime.broadcaster.emit, build_progress_event("job-1", 1, 2, "RUNNING"))

        assert runtime.broadcaster.subscriber_count == 0
