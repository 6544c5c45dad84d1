"""Flask HTTP API over the Visor data file.

Every request loads the data file into a fresh VisorStore, so the API applies
the same migrations, parsing and project rules as the app. Writes save the
file back; the running app picks them up through its file watcher.
"""

import argparse
import os
from pathlib import Path
from typing import Optional, Tuple

from flask import Flask, current_app, jsonify, request

from config import API_HOST, API_PORT, API_PID_FILE, DATA_FILE, USE_PROJECT_COLOR
from models import TaskStatus
from storage import load_data, save_data
from store import VisorStore

app = Flask(__name__)
app.config["DATA_FILE"] = DATA_FILE


def _data_file() -> Path:
    return Path(current_app.config["DATA_FILE"])


def _open_store() -> Tuple[VisorStore, Optional[dict]]:
    """Load the data file into a store positioned at home."""
    data = load_data(_data_file())
    store = VisorStore()
    store.load_snapshot(data)
    # New tasks and journal entries default to the inbox, not the saved view
    store.nav.reset()
    return store, data


def _save(store: VisorStore, original: Optional[dict]):
    """Write the store back, keeping the app's saved navigation stack."""
    snapshot = store.to_snapshot()
    if original:
        saved_stack = original.get("view_stack", original.get("viewStack"))
        if saved_stack is not None:
            snapshot["view_stack"] = saved_stack
    if not save_data(snapshot, _data_file()):
        return jsonify({"error": "failed to save data"}), 500
    return None


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.errorhandler(404)
def not_found(error):
    return jsonify({"error": "not found"}), 404


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({"error": "not found"}), 404


@app.route("/api/<path:path>", methods=["OPTIONS"])
def preflight(path):
    return "", 204


@app.route("/api/status")
def api_status():
    """Return task, project and pending counts."""
    store, _ = _open_store()
    pending = sum(1 for t in store.tasks.values() if not t.archived and not t.completed)
    return jsonify({
        "tasks": len(store.tasks),
        "projects": len(store.projects),
        "pending": pending,
    })


@app.route("/api/projects", methods=["GET"])
def list_projects():
    store, _ = _open_store()
    return jsonify([p.to_dict() for p in store.project_list()])


@app.route("/api/projects", methods=["POST"])
def create_project():
    body = _body()
    name = str(body.get("name") or "").strip()
    slug = str(body.get("slug") or "").strip()
    if not name or not slug:
        return jsonify({"error": "name and slug required"}), 400

    store, original = _open_store()
    if store.find_project_by_slug(slug) is not None:
        return jsonify({"error": f"project '{slug.lower()}' already exists"}), 409
    project = store.create_project(name, slug, USE_PROJECT_COLOR)

    failure = _save(store, original)
    if failure:
        return failure
    return jsonify(project.to_dict()), 201


@app.route("/api/tasks", methods=["GET"])
def list_tasks():
    """List tasks, optionally filtered by ?project=<slug> and ?status=<pending|todo|...>."""
    store, _ = _open_store()
    tasks = list(store.tasks.values())

    slug = request.args.get("project")
    if slug:
        project = store.find_project_by_slug(slug)
        tasks = [t for t in tasks if project is not None and t.project_id == project.id]

    status = request.args.get("status")
    if status:
        if status.lower() == "pending":
            tasks = [t for t in tasks if not t.archived and not t.completed]
        else:
            tasks = [t for t in tasks if t.status.value == status.upper()]

    return jsonify([t.to_dict() for t in tasks])


@app.route("/api/tasks", methods=["POST"])
def create_task():
    body = _body()
    content = str(body.get("content") or "").strip()
    if not content:
        return jsonify({"error": "content required"}), 400
    project = body.get("project")
    if project is not None and not isinstance(project, str):
        return jsonify({"error": "project must be a slug"}), 400

    store, original = _open_store()
    task = store.add_task(content, project or None)
    if task is None:
        return jsonify({"error": "content required"}), 400

    failure = _save(store, original)
    if failure:
        return failure
    return jsonify(task.to_dict()), 201


@app.route("/api/tasks/<task_id>/complete", methods=["PUT"])
def complete_task(task_id):
    store, original = _open_store()
    task = store.get_task(task_id)
    if task is None:
        return jsonify({"error": "task not found"}), 404
    if task.status != TaskStatus.DONE:
        store.update_task(task_id, status=TaskStatus.DONE)

    failure = _save(store, original)
    if failure:
        return failure
    return jsonify(task.to_dict())


@app.route("/api/tasks/<task_id>/archive", methods=["PUT"])
def archive_task(task_id):
    store, original = _open_store()
    task = store.get_task(task_id)
    if task is None:
        return jsonify({"error": "task not found"}), 404
    store.archive_task(task_id)

    failure = _save(store, original)
    if failure:
        return failure
    return jsonify(task.to_dict())


@app.route("/api/log", methods=["GET"])
def list_log():
    store, _ = _open_store()
    return jsonify([e.to_dict() for e in store.log_entries])


@app.route("/api/log", methods=["POST"])
def create_log_entry():
    body = _body()
    content = str(body.get("content") or "").strip()
    if not content:
        return jsonify({"error": "content required"}), 400

    store, original = _open_store()
    project = store.find_project_by_slug(str(body.get("project") or "inbox"))
    entry = store.add_log_entry(content, project.id if project else store.inbox_id)

    failure = _save(store, original)
    if failure:
        return failure
    return jsonify(entry.to_dict()), 201


def main():
    parser = argparse.ArgumentParser(description="Visor HTTP API server")
    parser.add_argument("--port", type=int, default=API_PORT)
    parser.add_argument("--data-file", type=Path, default=DATA_FILE)
    parser.add_argument("--pid-file", type=Path, default=API_PID_FILE)
    args = parser.parse_args()

    app.config["DATA_FILE"] = args.data_file
    print(f"Serving {args.data_file} on http://{API_HOST}:{args.port}")

    # Write PID file
    args.pid_file.parent.mkdir(parents=True, exist_ok=True)
    args.pid_file.write_text(str(os.getpid()))

    try:
        app.run(host=API_HOST, port=args.port, debug=False)
    finally:
        args.pid_file.unlink(missing_ok=True)


if __name__ == "__main__":
    main()
