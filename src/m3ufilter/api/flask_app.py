import logging

from flask import Flask, Response, current_app, jsonify, request
from flasgger import Swagger

from m3ufilter import config
from m3ufilter.cache import PlaylistCache
from m3ufilter.errors import (
    FetchTimeoutError,
    InvalidSourceError,
    PlaylistParseError,
    UpstreamError,
)
from m3ufilter.fetch import fetch_playlist_text
from m3ufilter.filter import generate_filtered
from m3ufilter.groups import analyze
from m3ufilter.worker import FilterWorker, JobState

logger = logging.getLogger(__name__)


class PlaylistNotFound(Exception):
    pass


class InvalidRequest(Exception):
    pass


def create_app(cache=None, worker=None):
    app = Flask(__name__)
    app.config["PLAYLIST_CACHE"] = PlaylistCache() if cache is None else cache
    app.config["FILTER_WORKER"] = FilterWorker() if worker is None else worker
    Swagger(app)
    register_routes(app)
    return app


def _cache():
    return current_app.config["PLAYLIST_CACHE"]


def _worker():
    return current_app.config["FILTER_WORKER"]


def _error_response(e):
    if isinstance(e, PlaylistParseError):
        return jsonify(e.to_dict()), 400
    if isinstance(e, (InvalidSourceError, PlaylistNotFound, InvalidRequest)):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, FetchTimeoutError):
        return jsonify({"error": "Fetch timed out"}), 504
    if isinstance(e, UpstreamError):
        return jsonify({"error": str(e), "upstreamStatus": e.status_code}), 502
    logger.exception("Unexpected error while handling %s", request.path)
    return jsonify({"error": "Internal server error"}), 500


def _request_data():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object.")
    return data


def _text_field(data, name):
    value = data.get(name) or ""
    if not isinstance(value, str):
        raise InvalidRequest(f"{name} must be a string.")
    return value


def _disabled_groups(data):
    groups = data.get("disabledGroups") or []
    if isinstance(groups, str):
        groups = groups.split(",")
    if not isinstance(groups, list):
        raise InvalidRequest("disabledGroups must be a list of strings.")
    return [g for g in groups if isinstance(g, str) and g.strip()]


def _resolve_playlist_text(data):
    cache_key = _text_field(data, "cacheKey").strip()
    source_url = _text_field(data, "sourceUrl").strip()

    text = _cache().get(cache_key) if cache_key else None
    if text is None and source_url:
        text = fetch_playlist_text(source_url)
        if cache_key:
            _cache().set(cache_key, text)
    if text is None:
        raise PlaylistNotFound("Unable to load playlist from cache or sourceUrl.")
    return text


def _job_payload(job):
    processed, total = job.progress
    payload = {
        "jobId": job.id,
        "state": job.state.value,
        "processed": processed,
        "total": total,
    }
    result = job.filter_result
    if job.state is JobState.DONE and result is not None:
        payload["result"] = {
            "filteredText": result.text,
            "totalChannels": result.total_entries,
            "keptChannels": result.kept_entries,
        }
    if job.error is not None:
        error = job.error
        payload["error"] = error.to_dict() if isinstance(error, PlaylistParseError) else {"error": str(error)}
    return payload


def register_routes(app):
    @app.route("/api/health", methods=["GET"])
    def health_api():
        """
        Health Check
        ---
        tags:
          - Health
        responses:
          200:
            description: Service is up
        """
        return jsonify({"status": "ok"})

    @app.route("/api/playlist/analyze", methods=["POST"])
    def analyze_playlist_api():
        """
        Analyze Playlist Groups
        ---
        tags:
          - Playlist
        parameters:
          - name: body
            in: body
            required: true
            schema:
              type: object
              properties:
                sourceUrl:
                  type: string
                  description: URL of the playlist
                rawText:
                  type: string
                  description: Playlist text, used instead of fetching sourceUrl
                sourceName:
                  type: string
                  description: Display name for the playlist
        responses:
          200:
            description: Group statistics and a cache key for later generation
            schema:
              type: object
              properties:
                cacheKey:
                  type: string
                sourceName:
                  type: string
                totalChannels:
                  type: integer
                groupCount:
                  type: integer
                groups:
                  type: array
                  items:
                    type: object
                    properties:
                      name:
                        type: string
                      count:
                        type: integer
          400:
            description: No source provided or the playlist is malformed
          502:
            description: Upstream playlist server failed
          504:
            description: Fetching the playlist timed out
        """
        try:
            data = _request_data()
            source_url = _text_field(data, "sourceUrl").strip() or None
            raw_text = _text_field(data, "rawText")

            if not source_url and not raw_text.strip():
                return jsonify({"error": "Provide a sourceUrl or rawText."}), 400

            text = raw_text if raw_text.strip() else fetch_playlist_text(source_url)
            analysis = analyze(text, _text_field(data, "sourceName"), source_url)
            cache_key = _cache().put(text)

            return jsonify(
                {
                    "cacheKey": cache_key,
                    "sourceUrl": source_url,
                    "sourceName": analysis.derived_name,
                    "totalChannels": analysis.total_entries,
                    "groupCount": analysis.group_count,
                    "expirationUtc": analysis.expires_at.isoformat() if analysis.expires_at else None,
                    "groups": [{"name": n, "count": c} for n, c in analysis.groups],
                }
            )
        except Exception as e:
            logger.error(f"Error in analyze_playlist_api: {e}")
            return _error_response(e)

    @app.route("/api/playlist/generate", methods=["POST"])
    def generate_playlist_api():
        """
        Generate Filtered Playlist
        ---
        tags:
          - Playlist
        parameters:
          - name: body
            in: body
            required: true
            schema:
              type: object
              properties:
                cacheKey:
                  type: string
                  description: Key returned by the analyze call
                sourceUrl:
                  type: string
                  description: URL to fetch when the cache key is missing or expired
                disabledGroups:
                  type: array
                  items:
                    type: string
                  description: Groups to drop (case-insensitive)
        responses:
          200:
            description: The filtered playlist and channel counts
            schema:
              type: object
              properties:
                filteredText:
                  type: string
                totalChannels:
                  type: integer
                keptChannels:
                  type: integer
          400:
            description: No source provided or the playlist is malformed
          502:
            description: Upstream playlist server failed
          504:
            description: Fetching the playlist timed out
        """
        try:
            data = _request_data()
            if not _text_field(data, "cacheKey").strip() and not _text_field(data, "sourceUrl").strip():
                return jsonify({"error": "Provide a cacheKey or sourceUrl."}), 400

            text = _resolve_playlist_text(data)
            result = generate_filtered(text, _disabled_groups(data))
            return jsonify(
                {
                    "filteredText": result.text,
                    "totalChannels": result.total_entries,
                    "keptChannels": result.kept_entries,
                }
            )
        except Exception as e:
            logger.error(f"Error in generate_playlist_api: {e}")
            return _error_response(e)

    @app.route("/api/playlist/download", methods=["POST"])
    def download_playlist_api():
        """
        Download Filtered Playlist
        ---
        tags:
          - Playlist
        parameters:
          - name: body
            in: body
            required: true
            schema:
              type: object
              properties:
                cacheKey:
                  type: string
                sourceUrl:
                  type: string
                disabledGroups:
                  type: array
                  items:
                    type: string
        responses:
          200:
            description: The filtered playlist as an M3U file.
            content:
              application/vnd.apple.mpegurl:
                schema:
                  type: string
                  format: text
            headers:
              Content-Disposition:
                type: string
                description: Suggests a filename for the downloaded playlist.
                example: attachment; filename="filtered_channels.m3u"
          400:
            description: No source provided or the playlist is malformed
        """
        try:
            data = _request_data()
            if not _text_field(data, "cacheKey").strip() and not _text_field(data, "sourceUrl").strip():
                return jsonify({"error": "Provide a cacheKey or sourceUrl."}), 400

            text = _resolve_playlist_text(data)
            result = generate_filtered(text, _disabled_groups(data))
            response = Response(result.text + "\n", mimetype="application/vnd.apple.mpegurl")
            response.headers["Content-Disposition"] = (
                f"attachment; filename={config.FILTER_OUTPUT_FILENAME}"
            )
            response.headers["X-Total-Channels"] = str(result.total_entries)
            response.headers["X-Kept-Channels"] = str(result.kept_entries)
            return response
        except Exception as e:
            logger.error(f"Error in download_playlist_api: {e}")
            return _error_response(e)

    @app.route("/api/playlist/jobs", methods=["POST"])
    def submit_job_api():
        """
        Start Background Filter Job
        ---
        tags:
          - Jobs
        parameters:
          - name: body
            in: body
            required: true
            schema:
              type: object
              properties:
                cacheKey:
                  type: string
                sourceUrl:
                  type: string
                disabledGroups:
                  type: array
                  items:
                    type: string
        responses:
          202:
            description: Job accepted
            schema:
              type: object
              properties:
                jobId:
                  type: string
          400:
            description: No source provided
        """
        try:
            data = _request_data()
            if not _text_field(data, "cacheKey").strip() and not _text_field(data, "sourceUrl").strip():
                return jsonify({"error": "Provide a cacheKey or sourceUrl."}), 400

            text = _resolve_playlist_text(data)
            job = _worker().submit(text, _disabled_groups(data))
            return jsonify({"jobId": job.id}), 202
        except Exception as e:
            logger.error(f"Error in submit_job_api: {e}")
            return _error_response(e)

    @app.route("/api/playlist/jobs/<job_id>", methods=["GET"])
    def job_status_api(job_id):
        """
        Background Filter Job Status
        ---
        tags:
          - Jobs
        parameters:
          - name: job_id
            in: path
            type: string
            required: true
        responses:
          200:
            description: Job state, progress and, once finished, its result or error
          404:
            description: Unknown job
        """
        job = _worker().get(job_id)
        if job is None:
            return jsonify({"error": "Unknown job"}), 404
        return jsonify(_job_payload(job))

    @app.route("/api/playlist/jobs/<job_id>", methods=["DELETE"])
    def cancel_job_api(job_id):
        """
        Cancel Background Filter Job
        ---
        tags:
          - Jobs
        parameters:
          - name: job_id
            in: path
            type: string
            required: true
        responses:
          200:
            description: Job cancelled (or already finished)
          404:
            description: Unknown job
        """
        job = _worker().get(job_id)
        if job is None:
            return jsonify({"error": "Unknown job"}), 404
        cancelled = job.cancel()
        return jsonify({"jobId": job.id, "cancelled": cancelled, "state": job.state.value})


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(
        filename=config.LOG_FILE,
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    app.run(host=config.API_HOST, port=config.API_PORT, debug=True)
