# tests/test_delegate.py
from unittest import mock

import pytest
import requests

from tabclean.delegate import RemoteCleaner
from tabclean.exceptions import UpstreamFailure

REPORT = {
    "samples": 3,
    "features": 2,
    "missingFilled": 0,
    "outliersRemoved": 0,
    "categoricalMappings": {},
    "ready": True,
}


def _response(status_code=200, json_body=None, text=""):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


class TestRemoteCleaner:

    def test_success(self, session):
        session.post.return_value = _response(json_body={"report": REPORT, "labels": [0, 1, 0]})
        cleaner = RemoteCleaner("http://cleaner:8001/", timeout=5, session=session)

        response = cleaner.clean("1,2,0\n3,4,1\n5,6,0", outlier_policy="drop")

        assert response.report.samples == 3
        assert response.report.ready
        assert response.labels == [0.0, 1.0, 0.0]
        session.post.assert_called_once_with(
            "http://cleaner:8001/api/preprocess",
            json={"csvContent": "1,2,0\n3,4,1\n5,6,0", "includeData": True, "outlierPolicy": "drop"},
            timeout=5,
        )

    def test_unreachable(self, session):
        session.post.side_effect = requests.ConnectionError("connection refused")
        cleaner = RemoteCleaner("http://cleaner:8001", session=session)

        with pytest.raises(UpstreamFailure) as excinfo:
            cleaner.clean("1,0")

        assert excinfo.value.status_code == 502
        assert "connection refused" in excinfo.value.details

    def test_error_status_keeps_upstream_text(self, session):
        session.post.return_value = _response(status_code=500, text="Traceback: KeyError 'label'")
        cleaner = RemoteCleaner("http://cleaner:8001", session=session)

        with pytest.raises(UpstreamFailure) as excinfo:
            cleaner.clean("1,0")

        assert excinfo.value.details == "Traceback: KeyError 'label'"
        assert "500" in excinfo.value.message

    def test_invalid_json(self, session):
        session.post.return_value = _response(text="<html>oops</html>")
        cleaner = RemoteCleaner("http://cleaner:8001", session=session)

        with pytest.raises(UpstreamFailure) as excinfo:
            cleaner.clean("1,0")

        assert excinfo.value.details == "<html>oops</html>"

    def test_report_missing_fields(self, session):
        session.post.return_value = _response(json_body={"report": {"samples": 3}}, text='{"report": {"samples": 3}}')
        cleaner = RemoteCleaner("http://cleaner:8001", session=session)

        with pytest.raises(UpstreamFailure):
            cleaner.clean("1,0")
