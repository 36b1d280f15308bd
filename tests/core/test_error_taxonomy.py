"""Tests for the service error taxonomy."""

import pytest

from tubely.core import exceptions
from tubely.core.exceptions import ProbeFailed, ProbeParseError, ServiceError

CLASSIFIED = [
    exceptions.BadRequest,
    exceptions.Unauthenticated,
    exceptions.Forbidden,
    exceptions.NotFound,
    exceptions.PayloadTooLarge,
    exceptions.UnsupportedMediaType,
    exceptions.ProbeFailed,
    exceptions.TranscodeFailed,
    exceptions.StorageWriteFailed,
]


class TestErrorTaxonomy:

    def test_each_kind_has_its_own_status(self) -> None:
        statuses = [error.status_code for error in CLASSIFIED]

        assert len(set(statuses)) == len(statuses)

    @pytest.mark.parametrize("error", CLASSIFIED)
    def test_classified_errors_never_use_generic_500(self, error) -> None:
        assert error.status_code != 500
        assert error.status_code != ServiceError.status_code

    def test_probe_errors_share_a_status(self) -> None:
        assert ProbeFailed.status_code == ProbeParseError.status_code == 422
        assert ProbeFailed.error_code != ProbeParseError.error_code

    def test_message_defaults_to_docstring(self) -> None:
        assert exceptions.TranscodeFailed().message == "Fast-start transcoding failed."
