from dochub.errors import (
    DocHubError,
    DownloadError,
    ErrorCode,
    InvalidConfigError,
    PageNotFoundError,
    ProcessFailedError,
)


def test_error_codes_cover_closed_taxonomy():
    assert {code.value for code in ErrorCode} == {
        "PAGE_NOT_FOUND",
        "BLOCK_NOT_FOUND",
        "FETCH_ARTICLE_ERROR",
        "MAX_RETRIES_EXCEEDED",
        "CONVERSION_ERROR",
        "PAGE_CONVERSION_ERROR",
        "INVALID_URL",
        "INVALID_PROTOCOL",
        "DOWNLOAD_ERROR",
        "DIRECTORY_CREATE_ERROR",
        "PROCESS_FAILED",
        "MISSING_CREDENTIAL",
        "INVALID_CONFIG",
    }


def test_as_dict_includes_meta_and_cause():
    cause = PageNotFoundError("abc123")
    try:
        try:
            raise cause
        except PageNotFoundError as exc:
            raise ProcessFailedError("abc123", exc) from exc
    except ProcessFailedError as error:
        payload = error.as_dict()

    assert payload["code"] == "PROCESS_FAILED"
    assert payload["message"] == "Failed to process article abc123: Page not found: abc123"
    assert payload["meta"] == {"article_id": "abc123"}
    assert payload["cause"] == "PageNotFoundError: Page not found: abc123"


def test_download_error_records_status():
    error = DownloadError("https://cdn.example/a.png", status_code=503)

    assert isinstance(error, DocHubError)
    assert error.status_code == 503
    assert error.meta == {"url": "https://cdn.example/a.png", "status": 503}
    assert "503" in error.message


def test_invalid_config_names_field():
    error = InvalidConfigError("max_retries", "max_retries must be between 0 and 10")

    assert error.field == "max_retries"
    assert error.code is ErrorCode.INVALID_CONFIG
    assert error.cause is None
