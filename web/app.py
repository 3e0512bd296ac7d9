"""
Flask application for the print station API.
"""
import time
import uuid

from flask import Flask, jsonify, request
from werkzeug.utils import secure_filename

from controller.config import StationConfig
from controller.controller import PrintController
from controller.cups_printer import CupsPrinter
from controller.print_job import InvalidJobError, PrintJob
from imaging.pipeline import LayoutPipeline


def build_controller(config: StationConfig) -> PrintController:
    printer = CupsPrinter(
        printer_name=config.printer_id,
        lp_path=config.lp_path,
        media=config.media,
        extra_args=config.extra_lp_args,
    )
    return PrintController(
        pipeline=LayoutPipeline(config.to_pipeline_config()),
        printer=printer,
        delete_source=config.delete_source_after_print,
        job_history=config.job_history,
    )


def create_app(config: StationConfig | None = None, controller: PrintController | None = None):
    if config is None:
        config = StationConfig.from_env()

    app = Flask(__name__)
    app.config["SPOOL_DIR"] = config.spool_dir
    app.config["PRINTER_ID"] = config.printer_id

    if controller is None:
        controller = build_controller(config)
    controller.start()
    app.controller = controller

    @app.route("/status", methods=["GET"])
    def status():
        return jsonify(app.controller.get_status())

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(app.controller.get_health().to_dict())

    @app.route("/print-jobs", methods=["POST"])
    def submit_print_job():
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            return jsonify({"ok": False, "error": "missing_file"}), 400

        job_id = request.form.get("jobId") or uuid.uuid4().hex
        payload = {
            "layout": request.form.get("layout"),
            "options": {
                "fitToPage": request.form.get("fitToPage", False),
                "copies": request.form.get("copies", 1),
            },
        }

        # Job-unique name so concurrent uploads never collide.
        spool_dir = app.config["SPOOL_DIR"]
        spool_dir.mkdir(parents=True, exist_ok=True)
        name = secure_filename(upload.filename) or "upload.jpg"
        source_path = spool_dir / f"{time.time_ns()}-{secure_filename(job_id)}-{name}"

        try:
            job = PrintJob.from_payload(job_id, payload, source_path)
        except InvalidJobError as e:
            return jsonify({"ok": False, "error": str(e)}), 400

        upload.save(source_path)
        try:
            app.controller.submit(job)
        except ValueError:
            source_path.unlink(missing_ok=True)
            return jsonify({"ok": False, "error": "duplicate_job"}), 409
        except Exception:
            source_path.unlink(missing_ok=True)
            raise

        return jsonify({"ok": True, "jobId": job_id}), 202

    @app.route("/print-jobs/<job_id>", methods=["GET"])
    def get_print_job(job_id: str):
        record = app.controller.get_job(job_id)
        if record is None:
            return jsonify({"ok": False, "error": "not_found"}), 404
        return jsonify(record)

    return app
