import pytest
from PIL import Image

from controller.controller import PrintController
from controller.health import HealthCode, HealthLevel
from controller.print_job import PrintJob, PrintOptions
from imaging.pipeline import LayoutPipeline
from imaging.pipeline_config import PipelineConfig
from tests.fakes.fake_printer import FakePrinter
from tests.helpers import wait_for


@pytest.fixture
def pipeline(tmp_path):
    icc = tmp_path / "profile.icc"
    icc.write_bytes(b"fake-icc-profile")
    return LayoutPipeline(PipelineConfig(output_dir=tmp_path / "out", icc_profile=icc))


@pytest.fixture
def printer():
    return FakePrinter()


def make_job(tmp_path, job_id="job-1", layout="a5", data=None, **options):
    source = tmp_path / f"{job_id}.png"
    if data is None:
        Image.new("RGB", (300, 200), (255, 0, 0)).save(source)
    else:
        source.write_bytes(data)
    return PrintJob(
        job_id=job_id,
        source_path=source,
        layout=layout,
        options=PrintOptions(**options),
    )


def test_processed_job_prints_artifact_and_cleans_up(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    job = make_job(tmp_path, copies=2, fit_to_page=True)

    controller.process_job(job)

    record = controller.get_job("job-1")
    assert record["status"] == "completed"
    assert record["result"] == "processed"

    assert len(printer.printed) == 1
    printed = printer.printed[0]
    assert printed["exists"] is True
    assert printed["path"] != job.source_path
    assert printed["path"].suffix == ".jpg"
    assert printed["copies"] == 2
    assert printed["fit_to_page"] is True
    assert printed["job_name"] == "print-job-1"

    # processed artifact and spooled source are gone
    assert not printed["path"].exists()
    assert not job.source_path.exists()


def test_corrupt_source_still_prints_original(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer, delete_source=False)
    job = make_job(tmp_path, data=b"not an image")

    controller.process_job(job)

    record = controller.get_job("job-1")
    assert record["status"] == "completed"
    assert record["result"] == "fallback"
    assert record["error"]

    assert printer.printed[0]["path"] == job.source_path
    assert printer.printed[0]["data"] == b"not an image"
    # fallback never deletes the original unless configured to
    assert job.source_path.exists()


def test_missing_source_fails_job_without_printing(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    job = PrintJob(job_id="gone", source_path=tmp_path / "gone.jpg")

    controller.process_job(job)

    record = controller.get_job("gone")
    assert record["status"] == "failed"
    assert "Cannot read source file" in record["error"]
    assert printer.printed == []


def test_printer_failure_marks_job_failed_and_health_error(tmp_path, pipeline, printer):
    printer.fail_with = "lp failed (rc=1): printer offline"
    controller = PrintController(pipeline, printer)
    job = make_job(tmp_path)

    controller.process_job(job)

    record = controller.get_job("job-1")
    assert record["status"] == "failed"
    assert "printer offline" in record["error"]

    health = controller.get_health()
    assert health.level == HealthLevel.ERROR
    assert health.code == HealthCode.PRINT_FAILED

    assert not job.source_path.exists()
    assert not any((tmp_path / "out").glob("*.jpg"))


def test_successful_print_clears_printer_error(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    printer.fail_with = "boom"
    controller.process_job(make_job(tmp_path, job_id="first"))

    printer.fail_with = None
    controller.process_job(make_job(tmp_path, job_id="second"))

    assert controller.get_health().level == HealthLevel.OK


def test_submit_runs_job_on_worker_thread(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    controller.start()

    controller.submit(make_job(tmp_path, layout="two4x6"))
    controller.wait("job-1", timeout=30)

    wait_for(lambda: controller.get_job("job-1")["status"] == "completed", timeout=30)
    assert len(printer.printed) == 1


def test_concurrent_jobs_do_not_collide(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    controller.start()

    job_ids = [f"job-{i}" for i in range(4)]
    for job_id in job_ids:
        controller.submit(make_job(tmp_path, job_id=job_id, layout="two4x6"))
    for job_id in job_ids:
        controller.wait(job_id, timeout=30)

    wait_for(
        lambda: all(controller.get_job(j)["status"] == "completed" for j in job_ids),
        timeout=30,
    )
    printed_paths = {entry["path"] for entry in printer.printed}
    assert len(printed_paths) == 4


def test_duplicate_submission_is_rejected(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    job = make_job(tmp_path)
    controller.submit(job)

    with pytest.raises(ValueError, match="already submitted"):
        controller.submit(job)


def test_status_reports_printer_and_job_counts(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer)
    controller.start()
    controller.process_job(make_job(tmp_path))

    status = controller.get_status()

    assert status["printerId"] == "FAKE_PRINTER"
    assert status["status"] == "running"
    assert status["jobs"]["completed"] == 1
    assert status["jobs"]["failed"] == 0

    controller.stop()
    assert controller.get_status()["status"] == "stopped"


def test_start_reports_unavailable_printer(pipeline, printer):
    printer.available = False
    controller = PrintController(pipeline, printer)

    controller.start()

    health = controller.get_health()
    assert health.level == HealthLevel.ERROR
    assert health.code == HealthCode.PRINTER_UNAVAILABLE


def test_unknown_job_returns_none(pipeline, printer):
    controller = PrintController(pipeline, printer)
    assert controller.get_job("missing") is None


def test_old_finished_jobs_are_evicted(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer, job_history=2)

    for job_id in ("old", "middle", "recent"):
        controller.process_job(make_job(tmp_path, job_id=job_id))

    assert controller.get_job("old") is None
    assert controller.get_job("middle")["status"] == "completed"
    assert controller.get_job("recent")["status"] == "completed"
    assert controller.get_status()["jobs"]["completed"] == 2


def test_running_jobs_are_never_evicted(tmp_path, pipeline, printer):
    controller = PrintController(pipeline, printer, job_history=0)
    printer.block_job = "print-busy"

    controller.submit(make_job(tmp_path, job_id="busy"))
    wait_for(lambda: controller.get_job("busy")["status"] == "processing", timeout=30)

    controller.process_job(make_job(tmp_path, job_id="done"))

    assert controller.get_job("done") is None
    assert controller.get_job("busy")["status"] == "processing"

    printer.release.set()
    controller.wait("busy", timeout=30)
    assert controller.get_job("busy") is None
