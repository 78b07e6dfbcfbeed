"""Unit tests for the package upload and install flow."""

import httpx
import pytest

from aem_ops.features.http.constants import (
    PACKAGE_INSTALL_ENDPOINT,
    PACKAGE_LIST_ENDPOINT,
    PACKAGE_SERVICE_ENDPOINT,
)
from aem_ops.features.packages.manager import (
    build_package,
    delete_package,
    list_packages,
    upload_and_install_package,
    upload_package,
)
from tests.helpers.aem import FakeAem, make_client


PACKAGE_PATH = "/etc/packages/my_group/site.zip"
ZIP_BYTES = b"PK\x03\x04fake-zip"


def upload_ok() -> httpx.Response:
    """Successful JSON upload response."""
    return httpx.Response(200, json={"success": True, "msg": "Package uploaded", "path": PACKAGE_PATH})


class TestUploadPackage:
    """Tests for upload_package."""

    @pytest.mark.unit
    def test_dry_run(self) -> None:
        """Test dry-run reports a simulated success without identifiers."""
        fake = FakeAem()

        output = upload_package(make_client(fake), ZIP_BYTES, "site", install=True, dry_run=True)

        assert fake.requests == []
        assert output.ok is True
        assert output.dry_run is True
        assert output.uploaded is False
        assert output.package_id is None
        assert output.package_name == "site.zip"
        assert output.logs == [
            "[DRY RUN] Would upload package",
            "[DRY RUN] Would install package after upload",
        ]

    @pytest.mark.unit
    def test_upload_only(self) -> None:
        """Test a successful upload without install."""
        fake = FakeAem().add("POST", PACKAGE_SERVICE_ENDPOINT, upload_ok())

        output = upload_package(make_client(fake), ZIP_BYTES, "site.zip")

        assert output.ok is True
        assert output.uploaded is True
        assert output.installed is False
        assert output.package_id == PACKAGE_PATH
        assert output.logs == [
            "Uploading package: site.zip",
            "Package uploaded successfully",
            f"Package path: {PACKAGE_PATH}",
        ]
        request = fake.requests[0]
        assert request.url.params["cmd"] == "upload"
        assert request.url.params["force"] == "true"

    @pytest.mark.unit
    def test_upload_and_install(self) -> None:
        """Test install posts to the script endpoint and folds in logs."""
        fake = (
            FakeAem()
            .add("POST", PACKAGE_SERVICE_ENDPOINT, upload_ok())
            .add(
                "POST",
                f"{PACKAGE_INSTALL_ENDPOINT}{PACKAGE_PATH}",
                httpx.Response(
                    200,
                    json={"success": True, "msg": "Package installed", "log": ["A /content/a"]},
                ),
            )
        )

        output = upload_and_install_package(make_client(fake), ZIP_BYTES, "site.zip")

        assert output.ok is True
        assert output.installed is True
        assert output.logs[-2:] == ["A /content/a", "Package installed successfully"]
        install_request = fake.requests[1]
        assert install_request.content == b"cmd=install"

    @pytest.mark.unit
    def test_upload_failure_returns_early(self) -> None:
        """Test a failed upload never attempts installation."""
        fake = FakeAem().add(
            "POST",
            PACKAGE_SERVICE_ENDPOINT,
            httpx.Response(200, json={"success": False, "msg": "Invalid package"}),
        )

        output = upload_package(make_client(fake), ZIP_BYTES, "site.zip", install=True)

        assert len(fake.requests) == 1
        assert output.ok is False
        assert output.uploaded is False
        assert output.logs[-2:] == ["Package upload failed", "Invalid package"]

    @pytest.mark.unit
    def test_install_failure(self) -> None:
        """Test an install failure fails the overall output."""
        fake = (
            FakeAem()
            .add("POST", PACKAGE_SERVICE_ENDPOINT, upload_ok())
            .add(
                "POST",
                f"{PACKAGE_INSTALL_ENDPOINT}{PACKAGE_PATH}",
                httpx.Response(200, text="<pre>Error: missing dependency</pre>"),
            )
        )

        output = upload_package(make_client(fake), ZIP_BYTES, "site.zip", install=True)

        assert output.ok is False
        assert output.uploaded is True
        assert output.installed is False
        assert output.logs[-2:] == ["Error: missing dependency", "Package installation failed"]

    @pytest.mark.unit
    def test_markup_upload_response(self) -> None:
        """Test the package id is scanned from markup responses."""
        fake = FakeAem().add(
            "POST",
            PACKAGE_SERVICE_ENDPOINT,
            httpx.Response(200, text=f'<div>Package uploaded: <a href="{PACKAGE_PATH}">x</a></div>'),
        )

        output = upload_package(make_client(fake), ZIP_BYTES, "site.zip")

        assert output.uploaded is True
        assert output.package_id == PACKAGE_PATH

    @pytest.mark.unit
    def test_http_error_is_captured(self) -> None:
        """Test HTTP errors become failed outputs with the status."""
        fake = FakeAem().add("POST", PACKAGE_SERVICE_ENDPOINT, httpx.Response(401))

        output = upload_package(make_client(fake), ZIP_BYTES, "site.zip")

        assert output.ok is False
        assert output.status_code == 401
        assert output.logs[-1] == "Error: Authentication failed. Check your credentials."

    @pytest.mark.unit
    def test_output_shape(self) -> None:
        """Test the output serializes with camelCase keys."""
        fake = FakeAem().add("POST", PACKAGE_SERVICE_ENDPOINT, upload_ok())

        data = upload_package(make_client(fake), ZIP_BYTES, "site.zip").to_output()

        assert set(data) == {
            "ok",
            "statusCode",
            "uploaded",
            "installed",
            "packageId",
            "packageName",
            "logs",
            "dryRun",
            "timestamp",
        }


class TestPackageCommands:
    """Tests for list, build and delete."""

    @pytest.mark.unit
    def test_list_packages(self) -> None:
        """Test listing maps entries to package paths."""
        fake = FakeAem().add(
            "GET",
            PACKAGE_LIST_ENDPOINT,
            httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "group": "my_group",
                            "name": "site",
                            "version": "1.0",
                            "downloadName": "site-1.0.zip",
                        }
                    ]
                },
            ),
        )

        output = list_packages(make_client(fake), group="my_group")

        assert output.ok is True
        assert output.packages[0].path == "/etc/packages/my_group/site-1.0.zip"
        assert fake.requests[0].url.params["group"] == "my_group"

    @pytest.mark.unit
    def test_list_failure(self) -> None:
        """Test a listing failure returns ok=False."""
        output = list_packages(make_client(FakeAem()))

        assert output.ok is False
        assert output.packages == []

    @pytest.mark.unit
    def test_build_and_delete(self) -> None:
        """Test build and delete post their commands."""
        fake = FakeAem().add(
            "POST",
            f"{PACKAGE_INSTALL_ENDPOINT}{PACKAGE_PATH}",
            httpx.Response(200, json={"success": True, "msg": "Done"}),
        )
        client = make_client(fake)

        built = build_package(client, PACKAGE_PATH)
        deleted = delete_package(client, PACKAGE_PATH)

        assert built.ok is True
        assert built.message == "Done"
        assert deleted.ok is True
        assert [r.content for r in fake.requests] == [b"cmd=build", b"cmd=delete"]

    @pytest.mark.unit
    def test_command_failure(self) -> None:
        """Test command errors are returned as messages."""
        output = delete_package(make_client(FakeAem()), PACKAGE_PATH)

        assert output.ok is False
        assert output.message == "Resource not found. Check the URL or path."
