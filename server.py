"""
Neurogym Server  –  Flask + Server-Sent Events
==============================================

Endpoints:
  POST /start              Start (or restart) a run from a JSON config body
  POST /stop               Ask the running simulation to stop
  GET  /status             Run state as JSON
  GET  /stream             SSE stream of per-generation payloads
  GET  /species            Species known to the server
  GET  /champion/<name>    Champion brain record of a species (404 if none)

Run:
  python server.py         # serves on port 5000
"""

import json
import queue
import threading

from flask import Flask, Response, request, jsonify

from simulation import Simulation
from species import default_species
from storage import MemoryStore, JsonFileStore
from config import (
    GENERATION_TIME, SIM_DT, MAX_GENERATIONS, SELECTION_METHOD,
    GLOBAL_MUTATION_MULTIPLIER, WORLD_WIDTH, WORLD_HEIGHT, DEFAULT_WORLD,
)

QUEUE_SIZE = 200

app = Flask(__name__)

_species_db = default_species()
_store      = MemoryStore(DEFAULT_WORLD)     # swapped for each run's store

_worker     = None
_stop       = threading.Event()
_events     = queue.Queue(maxsize=QUEUE_SIZE)
_lock       = threading.Lock()
_status     = {"running": False, "generation": 0, "max_gen": 0, "cfg": {}}


@app.after_request
def add_cors(response):
    response.headers.update({
        "Access-Control-Allow-Origin":  "*",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    })
    return response


@app.route("/", methods=["OPTIONS"])
@app.route("/<path:p>", methods=["OPTIONS"])
def preflight(p=""):
    return Response(status=200)


# ──────────────────────────────────────────────────────────────────────────────
# Run configuration
# ──────────────────────────────────────────────────────────────────────────────

def _build_cfg(data: dict) -> dict:
    """Merge a /start body with defaults. Raises ValueError on bad values."""
    species = data.get("species") or _species_db.names()
    unknown = [s for s in species if s not in _species_db]
    if unknown:
        raise ValueError(f"unknown species: {', '.join(unknown)}")
    mode = str(data.get("mode", "gym"))
    if mode not in ("gym", "ecosystem"):
        raise ValueError(f"unknown mode {mode!r}")
    selection = str(data.get("selection", SELECTION_METHOD))
    if selection not in ("fitness", "rank"):
        raise ValueError(f"unknown selection method {selection!r}")
    seed = data.get("seed")
    if seed is not None:
        if isinstance(seed, bool) or not isinstance(seed, (int, str)):
            raise ValueError(f"seed must be an integer, got {seed!r}")
        seed = int(seed)
        if seed < 0:
            raise ValueError(f"seed must be non-negative, got {seed}")

    get = data.get
    return {
        "mode":            mode,
        "species":         list(species),
        "selection":       selection,
        "world_width":     float(get("worldWidth", WORLD_WIDTH)),
        "world_height":    float(get("worldHeight", WORLD_HEIGHT)),
        "population":      int(get("population", 0)),
        "max_generations": int(get("maxGenerations", MAX_GENERATIONS)),
        "max_steps":       int(get("maxSteps", 10000)),
        "generation_time": float(get("generationTime", GENERATION_TIME)),
        "dt":              float(get("dt", SIM_DT)),
        "mutation":        float(get("mutationMultiplier", GLOBAL_MUTATION_MULTIPLIER)),
        "seed":            seed,
        "world":           str(get("world", DEFAULT_WORLD)),
        "saves":           get("savesDir"),
    }


def _generation_payload(cfg: dict, gen_idx: int, stats: list, creatures: list) -> dict:
    return {
        "type":   "generation",
        "gen":    gen_idx,
        "maxGen": cfg["max_generations"],
        "species": [
            {
                "name":       s["species"],
                "population": s["population"],
                "best":       round(s["best"], 3),
                "mean":       round(s["mean"], 3),
                "champion":   round(s["champion"], 3),
                "diversity":  round(s["diversity"], 4),
                "extinct":    s["extinct"],
            }
            for s in stats
        ],
        "snapshot": [
            {"x": round(c.position[0], 2), "y": round(c.position[1], 2),
             "r": int(c.color[0]), "g": int(c.color[1]), "b": int(c.color[2]),
             "species": c.species_name}
            for c in creatures if c.alive
        ],
    }


def _push(out_q: queue.Queue, payload: dict):
    # drop the oldest frame rather than block the simulation
    while True:
        try:
            out_q.put_nowait(payload)
            return
        except queue.Full:
            try:
                out_q.get_nowait()
            except queue.Empty:
                pass


# ──────────────────────────────────────────────────────────────────────────────
# Background run
# ──────────────────────────────────────────────────────────────────────────────

def _sim_worker(cfg: dict, stop_evt: threading.Event, out_q: queue.Queue):
    global _store

    def on_gen(gen_idx, stats, world, creatures):
        if stop_evt.is_set():
            return
        with _lock:
            _status["generation"] = gen_idx
        _push(out_q, _generation_payload(cfg, gen_idx, stats, creatures))

    sim = None
    with _lock:
        _status["running"] = True
    try:
        _store = (JsonFileStore(cfg["saves"], cfg["world"]) if cfg["saves"]
                  else MemoryStore(cfg["world"]))
        sim = Simulation(
            _species_db,
            species_names       = cfg["species"],
            mode                = cfg["mode"],
            store               = _store,
            seed                = cfg["seed"],
            world_width         = cfg["world_width"],
            world_height        = cfg["world_height"],
            generation_time     = cfg["generation_time"],
            dt                  = cfg["dt"],
            population_override = cfg["population"],
            mutation_multiplier = cfg["mutation"],
            selection_method    = cfg["selection"],
            verbose             = False,
            on_gen_callback     = on_gen,
        )
        if cfg["mode"] == "gym":
            sim.run(max_generations=cfg["max_generations"], stop_event=stop_evt)
        else:
            sim.run(max_steps=cfg["max_steps"], stop_event=stop_evt)
    finally:
        # stream clients stop on "done", so it goes out even when the run failed
        with _lock:
            _status["running"] = False
        _push(out_q, {"type": "done",
                      "gen": sim.generation if sim is not None else 0,
                      "creatures": len(sim.creatures()) if sim is not None else 0})


def _restart(cfg: dict):
    """Stop the current worker (if any) and launch a new one with cfg."""
    global _worker, _stop, _events

    _stop.set()
    if _worker is not None and _worker.is_alive():
        _worker.join(timeout=3)

    _stop   = threading.Event()
    _events = queue.Queue(maxsize=QUEUE_SIZE)
    with _lock:
        _status.update(running=False, generation=0, cfg=cfg,
                       max_gen=cfg["max_generations"])

    _worker = threading.Thread(target=_sim_worker, args=(cfg, _stop, _events),
                               daemon=True)
    _worker.start()


# ──────────────────────────────────────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────────────────────────────────────

@app.route("/start", methods=["POST"])
def start():
    try:
        cfg = _build_cfg(request.get_json(force=True, silent=True) or {})
    except (TypeError, ValueError) as exc:
        return jsonify({"status": "error", "error": str(exc)}), 400
    _restart(cfg)
    return jsonify({"status": "started", "cfg": cfg})


@app.route("/stop", methods=["POST"])
def stop():
    _stop.set()
    return jsonify({"status": "stopped"})


@app.route("/status", methods=["GET"])
def status():
    with _lock:
        return jsonify(dict(_status))


@app.route("/species", methods=["GET"])
def species():
    return jsonify([config.to_dict() for config in _species_db])


@app.route("/champion/<name>", methods=["GET"])
def champion(name):
    if name not in _species_db:
        return jsonify({"error": f"unknown species {name!r}"}), 404
    data = _store.load_champion_data(name)
    if data is None:
        return jsonify({"error": f"no champion recorded for {name!r}"}), 404
    return jsonify(data.to_dict())


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@app.route("/stream", methods=["GET"])
def stream():
    """Server-Sent Events: one event per generation, pings while idle."""
    out_q = _events

    def events():
        yield _sse({"type": "connected"})
        while True:
            try:
                payload = out_q.get(timeout=1)
            except queue.Empty:
                yield _sse({"type": "ping"})
                continue
            yield _sse(payload)
            if payload["type"] == "done":
                return

    return Response(events(), mimetype="text/event-stream",
                    headers={"Cache-Control": "no-cache",
                             "X-Accel-Buffering": "no"})


if __name__ == "__main__":
    print("=" * 50)
    print("  Neurogym Server  →  http://localhost:5000")
    print("=" * 50)
    app.run(host="0.0.0.0", port=5000, threaded=True, debug=False)
