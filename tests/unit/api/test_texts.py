"""Tests for the catalog, text info and section endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestCatalogEndpoints:
    def test_list_providers(self, client: TestClient) -> None:
        response = client.get("/v1/providers")
        assert response.status_code == 200
        assert response.json()[0]["name"] == "local"

    def test_list_texts(self, client: TestClient) -> None:
        response = client.get("/v1/texts")
        assert response.status_code == 200
        data = response.json()
        assert [entry["id"] for entry in data] == ["ENGWEB"]
        assert data[0]["has_text"] is True
        assert data[0]["provider_name"] == "local"

    def test_filter_audio_only(self, client: TestClient) -> None:
        response = client.get("/v1/texts", params={"has_text": "false"})
        assert response.status_code == 200
        assert response.json() == []

    def test_text_info(self, client: TestClient) -> None:
        response = client.get("/v1/texts/WEB")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "ENGWEB"
        assert data["sections"] == ["JN1", "JN2", "JN3"]

    def test_text_info_not_found(self, client: TestClient) -> None:
        response = client.get("/v1/texts/NOPE")
        assert response.status_code == 404


class TestSectionEndpoint:
    def test_section_content(self, client: TestClient) -> None:
        response = client.get("/v1/texts/ENGWEB/sections/JN3")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "For God so loved the world" in response.text

    def test_section_not_found(self, client: TestClient) -> None:
        response = client.get("/v1/texts/NOPE/sections/JN3")
        assert response.status_code == 404
