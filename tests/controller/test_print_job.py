from pathlib import Path

import pytest

from controller.print_job import (
    InvalidJobError,
    JobRecord,
    JobStatus,
    PrintJob,
    PrintOptions,
)


def test_layout_from_top_level_payload():
    job = PrintJob.from_payload("j1", {"layout": "two4x6"}, Path("/tmp/a.jpg"))
    assert job.layout == "two4x6"
    assert job.options == PrintOptions()


def test_layout_from_options_payload():
    job = PrintJob.from_payload("j1", {"options": {"layout": "twoA6"}}, Path("/tmp/a.jpg"))
    assert job.layout == "twoA6"


def test_layout_defaults_to_a5():
    job = PrintJob.from_payload("j1", {}, Path("/tmp/a.jpg"))
    assert job.layout == "a5"


def test_options_are_parsed():
    options = PrintOptions.from_payload({"fitToPage": "true", "copies": "2"})
    assert options == PrintOptions(fit_to_page=True, copies=2)


def test_fit_to_page_false_strings():
    assert PrintOptions.from_payload({"fitToPage": "false"}).fit_to_page is False


@pytest.mark.parametrize("copies", ["abc", 0, -2])
def test_invalid_copies_are_rejected(copies):
    with pytest.raises(InvalidJobError, match="copies"):
        PrintOptions.from_payload({"copies": copies})


def test_missing_copies_means_one():
    assert PrintOptions.from_payload({"copies": None}).copies == 1


def test_job_record_to_dict():
    record = JobRecord(job=PrintJob(job_id="j1", source_path=Path("/tmp/a.jpg")))
    data = record.to_dict()

    assert data["jobId"] == "j1"
    assert data["status"] == "pending"
    assert data["completedAt"] is None
    assert record.status == JobStatus.PENDING
