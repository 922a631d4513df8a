import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from config import get_settings
from extractor import HealthParameter, extract_health_parameters
from history import init_db, save_report, list_reports
from ocr import OCRError, UnreadableFileError, configure_tesseract, extract_text, is_allowed_file

# ================== CONFIG ==================
settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

app.config["DATABASE"] = settings.database
app.config["HISTORY_LIMIT"] = settings.history_limit
app.config["MAX_UPLOAD_BYTES"] = settings.max_upload_bytes
# Werkzeug refuses larger request bodies before they are read; the margin
# covers multipart boundaries and headers.
app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + 64 * 1024
app.config["OCR_LANGUAGE"] = settings.ocr_language
app.config["TRACE_EXTRACTION"] = settings.trace_extraction

configure_tesseract(settings.tesseract_cmd)

# Initialize database on startup
init_db(app.config["DATABASE"])


def error_response(message, status):
    return jsonify({"success": False, "error": message}), status


def too_large_message():
    return f"File size must be less than {app.config['MAX_UPLOAD_BYTES'] // (1024 * 1024)}MB"


@app.errorhandler(RequestEntityTooLarge)
def request_too_large(e):
    return error_response(too_large_message(), 413)


def run_extraction(text):
    """Run the extractor, sending its trace to the debug log when enabled"""
    trace = logger.debug if app.config["TRACE_EXTRACTION"] else None
    parameters = extract_health_parameters(text, trace=trace)
    logger.info("🔍 Parsed parameters: %d found", len(parameters))
    return [p.to_dict() for p in parameters]


# ================== HOME ==================
@app.route("/")
def home():
    return jsonify({
        "message": "Lab report service is running. POST a report to /analyze or text to /api/process-report."
    })


# ================== TEXT PARSING ==================
@app.route("/api/process-report", methods=["POST"])
def process_report():
    try:
        payload = request.get_json(silent=True) or {}
        text = payload.get("text")
        if not text or not isinstance(text, str):
            return error_response("No text provided", 400)

        return jsonify({"success": True, "parameters": run_extraction(text)})

    except HTTPException:
        raise
    except Exception:
        logger.exception("❌ Error parsing text")
        return error_response("Failed to parse text", 500)


# ================== OCR + ANALYSIS ==================
@app.route("/analyze", methods=["POST"])
def analyze():
    try:
        file = request.files.get("report")
        if not file or not file.filename:
            return error_response("No file uploaded", 400)

        filename = file.filename
        if not is_allowed_file(filename):
            return error_response("Please upload a PDF or image file (JPEG, PNG, WebP)", 400)

        file_bytes = file.read()
        max_bytes = app.config["MAX_UPLOAD_BYTES"]
        if len(file_bytes) > max_bytes:
            return error_response(too_large_message(), 413)

        text = extract_text(filename, file_bytes, lang=app.config["OCR_LANGUAGE"])

        return jsonify({
            "success": True,
            "fileName": filename,
            "fileSize": len(file_bytes),
            "extractedText": text,
            "parameters": run_extraction(text),
        })

    except UnreadableFileError as e:
        return error_response(str(e), 400)
    except OCRError as e:
        logger.error("❌ OCR ERROR: %s", e)
        return error_response(str(e), 500)
    except HTTPException:
        raise
    except Exception:
        logger.exception("❌ Error processing upload")
        return error_response("Failed to process the file. Please try again.", 500)


# ================== HISTORY ==================
@app.route("/api/save-report", methods=["POST"])
def save_report_route():
    user_id = request.headers.get("x-user-id")
    if not user_id:
        return error_response("Unauthorized - Please sign in to save reports", 401)

    try:
        payload = request.get_json(silent=True) or {}
        file_name = payload.get("fileName")
        health_parameters = payload.get("healthParameters")

        if not file_name or not isinstance(health_parameters, list):
            return error_response("Missing required fields: fileName and healthParameters", 400)

        parameters = [HealthParameter.from_dict(p) for p in health_parameters]
        report_id = save_report(
            app.config["DATABASE"],
            user_id,
            file_name,
            parameters,
            file_size=payload.get("fileSize") or 0,
            extracted_text=payload.get("extractedText") or "",
        )

        return jsonify({
            "success": True,
            "reportId": str(report_id),
            "message": "Report saved successfully!",
            "parametersCount": len(parameters),
        })

    except ValueError as e:
        return error_response(str(e), 400)
    except HTTPException:
        raise
    except Exception:
        logger.exception("❌ Error saving health report")
        return error_response("Failed to save report. Please try again.", 500)


@app.route("/api/save-report", methods=["GET"])
def list_reports_route():
    user_id = request.headers.get("x-user-id")
    if not user_id:
        return error_response("Unauthorized - Please sign in to view reports", 401)

    try:
        reports = list_reports(app.config["DATABASE"], user_id, limit=app.config["HISTORY_LIMIT"])
        for report in reports:
            report["id"] = str(report["id"])

        return jsonify({"success": True, "reports": reports, "totalReports": len(reports)})

    except Exception:
        logger.exception("❌ Error fetching health reports")
        return error_response("Failed to fetch reports. Please try again.", 500)


# ================== RUN SERVER ==================
if __name__ == "__main__":
    app.run(debug=True, port=5000)
