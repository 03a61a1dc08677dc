import logging
import os
import tempfile
import textwrap
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from colorlog import ColoredFormatter
from flask import Flask, current_app, jsonify, request, send_file
from waitress import serve
from werkzeug.datastructures import FileStorage

from courtbundler import bundle
from courtbundler.bundle_config import BundleConfig, BundleConfigParams
from courtbundler.csv_index import IndexRow, build_sections, load_index_data
from courtbundler.errors import BundleError
from courtbundler.logger import LOG_COLORS, configure_logger
from courtbundler.models import BundleMetadata, PageNumberSettings

MAX_FILENAME_LENGTH = 100


@dataclass
class RequestContext:
    """Holds context information for a bundle creation request."""

    session_id: str
    user_agent: str
    timestamp: str


def bundles_dir() -> Path:
    return Path(tempfile.gettempdir()) / "courtbundler" / "bundles"


def strtobool(value: str) -> bool:
    return value.lower() in ("y", "yes", "on", "1", "true", "t", "enabled")


def get_output_filename(filename: str, timestamp: str, fallback="Bundle"):
    """Stamp a generated filename with the session timestamp, shortening it if it gets too long."""
    stem, _, extension = filename.rpartition(".")
    output_file = f"{stem}_{timestamp}.{extension}"
    if len(output_file) > MAX_FILENAME_LENGTH:
        output_file = f"{stem[:60]}_{timestamp}.{extension}"
    if len(output_file) > MAX_FILENAME_LENGTH:
        output_file = f"{fallback}_{timestamp}.{extension}"
    return output_file


def _int_field(form, name: str, default: int) -> int:
    value = form.get(name, "")
    return int(value) if value.strip() else default


def _get_bundle_config_from_form(form, context: RequestContext) -> BundleConfig:
    """Extracts bundle configuration from the request form."""
    return BundleConfig(
        BundleConfigParams(
            timestamp=context.timestamp,
            session_id=context.session_id,
            user_agent=context.user_agent,
            date_setting=form.get("date_setting", ""),
            label_overflow="widen" if strtobool(form.get("widen_labels", "false")) else "error",
            volume_page_cap=_int_field(form, "volume_cap", 0),
            index_title=form.get("index_title", ""),
        )
    )


def _get_metadata_from_form(form) -> BundleMetadata:
    return BundleMetadata(
        case_name=form.get("case_name", ""),
        case_number=form.get("case_number", ""),
        court=form.get("court", ""),
        date=form.get("hearing_date", ""),
        bundle_title=form.get("bundle_title", ""),
        is_adversarial=strtobool(form.get("is_adversarial", "true")),
    )


def _get_page_number_settings_from_form(form) -> PageNumberSettings:
    return PageNumberSettings(
        position=form.get("page_num_position", "bottom-center"),
        font_size=_int_field(form, "page_num_size", 10),
        bold=strtobool(form.get("page_num_bold", "false")),
    )


def _handle_csv_index_upload(request_files: dict[str, FileStorage]) -> str | None:
    """Returns the uploaded CSV index as a string, or None if there isn't one."""
    if "csv_index" in request_files and request_files["csv_index"].filename:
        return request_files["csv_index"].stream.read().decode("utf-8")
    return None


def _read_uploads(files: list[FileStorage]) -> dict[str, bytes]:
    uploads = {}
    for storage in files:
        # Keyed by the name the browser sent, which is what the CSV index lists.
        if not storage.filename:
            continue
        uploads[storage.filename] = storage.read()
    return uploads


def _write_output(result: bundle.BundleResult, timestamp: str) -> Path:
    output_path = bundles_dir() / get_output_filename(result.filename, timestamp)
    output_path.write_bytes(result.zip_bytes if result.is_split else result.pdf_bytes)
    current_app.logger.debug(f"Wrote final output to: {output_path}")
    return output_path


def create_bundle():
    t1 = datetime.now()
    timestamp = t1.strftime("%Y%m%d_%H%M%S")
    session_id = str(uuid.uuid4())[:8]
    user_agent = request.headers.get("User-Agent") or ""
    current_app.logger.debug(f"New session ID: {session_id} {user_agent}")

    if "files" not in request.files:
        current_app.logger.error("Cannot create bundle: No files found in form submission")
        return jsonify({"status": "error", "message": "No files found. Please add files and try again."}), 400

    try:
        context = RequestContext(session_id=session_id, user_agent=user_agent, timestamp=timestamp)
        bundle_config = _get_bundle_config_from_form(request.form, context)
        metadata = _get_metadata_from_form(request.form)
        settings = _get_page_number_settings_from_form(request.form)
        watermark = strtobool(request.form.get("watermark", "false"))
    except ValueError as e:
        current_app.logger.warning(f"Rejected bundle options: {e}")
        return jsonify({"status": "error", "message": str(e)}), 400

    configure_logger(bundle_config)
    try:
        uploads = _read_uploads(request.files.getlist("files"))
        csv_content = _handle_csv_index_upload(request.files)
        if csv_content:
            rows = load_index_data(csv_content, bundle_config.date_setting)
        else:
            rows = [IndexRow(filename=name, title="", date="", is_section=False) for name in uploads]
        sections = build_sections(rows, uploads)
    except (KeyError, ValueError, UnicodeDecodeError) as e:
        msg = f"Could not read the uploaded index: {e}"
        current_app.logger.exception(msg)
        return jsonify({"status": "error", "message": msg}), 400

    log_msg = f"""
        Calling courtbundler.create_bundle with params:
        ....input_files: {list(uploads)}
        ....csv_index: {"yes" if csv_content else "no"}
        ....watermark: {watermark}"""
    current_app.logger.info(textwrap.dedent(log_msg))

    try:
        result = bundle.create_bundle(sections, metadata, settings, bundle_config, watermark=watermark)
    except BundleError as e:
        current_app.logger.exception("Bundle could not be created")
        return jsonify({"status": "error", "message": f"{e} Session code: {session_id}"}), 422
    except Exception:
        current_app.logger.exception("Fatal Error in processing bundle")
        return jsonify({"status": "error", "message": f"Fatal error in creating bundle. Session code: {session_id}"}), 500

    output_path = _write_output(result, timestamp)
    current_app.logger.info(f"Bundle creation completed in {datetime.now() - t1} for session ID: {session_id}")
    return jsonify(
        {
            "status": "success",
            "message": "Bundle created successfully!",
            "bundle_path": str(output_path),
            "total_pages": result.total_pages,
            "volumes": len(result.volumes),
            "is_split": result.is_split,
        }
    )


def download_bundle():
    bundle_path = request.args.get("path")
    if not bundle_path:
        return jsonify({"status": "error", "message": "Download Error: Bundle download path could not be found."}), 400

    absolute_path = Path(bundle_path).resolve()
    if absolute_path.parent != bundles_dir().resolve() or not absolute_path.exists():
        return jsonify({"status": "error", "message": "Download Error: bundle does not exist in expected location."}), 404

    return send_file(absolute_path, as_attachment=True)


def create_app():
    """Application factory."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 100 * 1024 * 1024
    app.logger.setLevel(logging.DEBUG)
    app.logger.propagate = False

    for handler in app.logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            formatter = ColoredFormatter("%(log_color)s%(asctime)s - %(levelname)s - [APP]: %(message)s", log_colors=LOG_COLORS, reset=True)
            handler.setFormatter(formatter)

    bundles_dir().mkdir(parents=True, exist_ok=True)

    @app.route("/")
    def index():
        return jsonify({"status": "ok", "service": "courtbundler"})

    app.add_url_rule("/create_bundle", view_func=create_bundle, methods=["POST"])
    app.add_url_rule("/download/bundle", view_func=download_bundle, methods=["GET"])
    return app


def main():
    """Creates and runs the Flask application."""
    created_app = create_app()
    host = os.environ.get("COURTBUNDLER_HOST", "0.0.0.0")  # nosec B104
    port = int(os.environ.get("COURTBUNDLER_PORT", "7001"))

    created_app.logger.info("courtbundler starting...")

    if os.environ.get("COURTBUNDLER_DEV"):
        created_app.logger.info(f"APP - Starting in DEVELOPMENT mode on {host}:{port}")
        created_app.run(host=host, port=port, debug=True)  # nosec B201
    else:
        created_app.logger.info(f"APP - Server started on {host}:{port} (Production/Waitress).")
        serve(created_app, host=host, port=port, threads=4, connection_limit=100, channel_timeout=120)


if __name__ == "__main__":
    main()
