"""
End-to-end tests for the live session socket.

Dependencies: pytest, fastapi.testclient
System role: Connection auth, message format handling and a full attendance run
"""

import pytest
from starlette.websockets import WebSocketDisconnect

from app.models.attendance import AttendanceStatus
from tests.api.conftest import bearer
from tests.conftest import CLASS_ID, STUDENT_A, STUDENT_B, student_identity, teacher_identity, token_for


def socket_url(identity=None):
    return f"/ws?token={token_for(identity)}" if identity else "/ws"


class TestConnection:
    @pytest.mark.parametrize("url", ["/ws", "/ws?token=invalid"])
    def test_bad_credentials_get_one_error_then_close(self, client, url):
        with client.websocket_connect(url) as ws:
            assert ws.receive_json() == {"event": "ERROR", "data": {"message": "Unauthorized or invalid token"}}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_invalid_message_format_closes(self, client):
        with client.websocket_connect(socket_url(teacher_identity())) as ws:
            ws.send_text("this is not json")
            assert ws.receive_json() == {"event": "ERROR", "data": {"message": "Invalid message format"}}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

    def test_unknown_event_keeps_socket_open(self, client):
        with client.websocket_connect(socket_url(student_identity())) as ws:
            ws.send_json({"event": "UNKNOWN_EVENT", "data": {}})
            assert ws.receive_json()["data"]["message"] == "Unknown event"
            ws.send_json({"event": "MY_ATTENDANCE", "data": {}})
            assert ws.receive_json() == {"event": "ERROR", "data": {"message": "No active attendance session"}}

    def test_today_summary_without_session(self, client):
        with client.websocket_connect(socket_url(teacher_identity())) as ws:
            ws.send_json({"event": "TODAY_SUMMARY", "data": {}})
            assert ws.receive_json() == {"event": "ERROR", "data": {"message": "No active attendance session"}}


def test_full_attendance_run(client, attendance_store):
    response = client.post("/attendance/start", json={"classId": CLASS_ID}, headers=bearer(teacher_identity()))
    assert response.status_code == 200

    with client.websocket_connect(socket_url(teacher_identity())) as teacher_ws, client.websocket_connect(
        socket_url(student_identity(STUDENT_A))
    ) as student_ws:
        student_ws.send_json({"event": "MY_ATTENDANCE", "data": {}})
        assert student_ws.receive_json() == {"event": "MY_ATTENDANCE", "data": {"status": "not yet updated"}}

        teacher_ws.send_json({"event": "ATTENDANCE_MARKED", "data": {"studentId": STUDENT_A, "status": "present"}})
        marked = {"event": "ATTENDANCE_MARKED", "data": {"studentId": STUDENT_A, "status": "Present"}}
        assert teacher_ws.receive_json() == marked
        assert student_ws.receive_json() == marked

        student_ws.send_json({"event": "MY_ATTENDANCE", "data": {}})
        assert student_ws.receive_json() == {"event": "MY_ATTENDANCE", "data": {"status": "Present"}}

        teacher_ws.send_json({"event": "TODAY_SUMMARY", "data": {}})
        summary = {"event": "TODAY_SUMMARY", "data": {"present": 1, "absent": 0, "total": 1}}
        assert teacher_ws.receive_json() == summary
        assert student_ws.receive_json() == summary

        teacher_ws.send_json({"event": "DONE", "data": {}})
        done = {"event": "DONE", "data": {"message": "Attendance persisted", "present": 1, "absent": 1, "total": 2}}
        assert teacher_ws.receive_json() == done
        assert student_ws.receive_json() == done

        teacher_ws.send_json({"event": "DONE", "data": {}})
        assert teacher_ws.receive_json() == {"event": "ERROR", "data": {"message": "No active attendance session"}}

    assert len(attendance_store.batches) == 1
    persisted = {r.student_id: r.status for r in attendance_store.batches[0]}
    assert persisted == {STUDENT_A: AttendanceStatus.PRESENT, STUDENT_B: AttendanceStatus.ABSENT}

    response = client.get(f"/class/{CLASS_ID}/my-attendance", headers=bearer(student_identity(STUDENT_A)))
    assert response.json()["data"]["status"] == "present"
