"""Tests for the HTTP API."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

import routes.api as api
from main import create_app


@pytest.fixture
def service():
    return Mock()


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[api.get_test_service] = lambda: service
    api.last_results = None
    yield TestClient(app)
    api.last_results = None


class TestStatus:
    """Tests for GET /status."""

    def test_ok(self, client):
        """Should report the service as up."""
        response = client.get('/status')
        assert response.status_code == 200
        assert response.json() == {'status': 'ok'}


class TestRunTest:
    """Tests for POST /run-test and GET /results."""

    def test_results_before_any_run(self, client):
        """Should return 404 until a run has finished."""
        assert client.get('/results').status_code == 404

    def test_runs_single_url(self, client, service):
        """Should pass the url through and keep the report for /results."""
        service.run_and_report.return_value = {'summary': {'total_tests': 6, 'passed': 6}, 'results': []}

        response = client.post('/run-test', params={'url': 'https://example.com/topics'})

        assert response.status_code == 200
        assert response.json()['summary'] == {'total_tests': 6, 'passed': 6}
        service.run_and_report.assert_called_once_with(csv_path=None, url='https://example.com/topics')
        assert client.get('/results').json()['summary']['total_tests'] == 6

    def test_runs_csv(self, client, service):
        """Should forward the csv path."""
        service.run_and_report.return_value = {'summary': {}, 'results': []}
        client.post('/run-test', params={'csv_path': 'urls.csv'})
        service.run_and_report.assert_called_once_with(csv_path='urls.csv', url=None)

    def test_failure_maps_to_500(self, client, service):
        """Should turn a failed run into an HTTP 500 with the error text."""
        service.run_and_report.side_effect = RuntimeError('CSV unreadable')

        response = client.post('/run-test')

        assert response.status_code == 500
        assert response.json()['detail'] == 'CSV unreadable'
