"""
Persistence for Neurogym.

World saves and champion brains are keyed by world name:

  <root>/<world>/worldState.json            one WorldState
  <root>/<world>/champions/<species>.json   one NeuralNetworkData each

The generation controller only talks to the ChampionStore interface;
MemoryStore keeps everything in dicts, JsonFileStore writes the layout
above.
"""

import json
import os
import shutil

from genome import NeuralNetworkData, GenomeError


class StateLoadError(ValueError):
    """A saved world state is missing fields or holds malformed records."""


# ──────────────────────────────────────────────────────────────────────────────
# Saved shapes
# ──────────────────────────────────────────────────────────────────────────────

class CreatureRecord:
    """One saved creature: species, position (x, y, z), velocity (x, y), brain."""

    __slots__ = ("species_name", "position", "velocity", "brain_data")

    def __init__(self, species_name: str, position, velocity,
                 brain_data: NeuralNetworkData):
        self.species_name = species_name
        self.position     = tuple(float(v) for v in position)
        self.velocity     = tuple(float(v) for v in velocity)
        self.brain_data   = brain_data

    def to_dict(self) -> dict:
        x, y, z = self.position
        vx, vy  = self.velocity
        return {
            "speciesName": self.species_name,
            "position":    {"x": x, "y": y, "z": z},
            "velocity":    {"x": vx, "y": vy},
            "brainData":   self.brain_data.to_dict(),
        }

    @classmethod
    def from_dict(cls, d) -> "CreatureRecord":
        try:
            pos, vel = d["position"], d["velocity"]
            position = (pos["x"], pos["y"], pos.get("z", 0.0))
            velocity = (vel["x"], vel["y"])
            record = cls(str(d["speciesName"]), position, velocity,
                         NeuralNetworkData.from_dict(d["brainData"]))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StateLoadError(f"bad creature record: {exc}") from exc
        return record


class WorldState:

    def __init__(self, active_species_names=None, current_generation: int = 0,
                 creatures=None):
        self.active_species_names = list(active_species_names or [])
        self.current_generation   = int(current_generation)
        self.creatures            = list(creatures or [])

    def to_dict(self) -> dict:
        return {
            "activeSpeciesNames": list(self.active_species_names),
            "currentGeneration":  self.current_generation,
            "creatures":          [c.to_dict() for c in self.creatures],
        }

    @classmethod
    def from_dict(cls, d) -> "WorldState":
        """Parse every record up front; any malformed field fails the load."""
        if not isinstance(d, dict):
            raise StateLoadError(f"world state must be a mapping, got {type(d).__name__}")
        try:
            names = [str(n) for n in d["activeSpeciesNames"]]
            generation = int(d["currentGeneration"])
            raw_creatures = d["creatures"]
        except (KeyError, TypeError, ValueError) as exc:
            raise StateLoadError(f"bad world state: {exc}") from exc
        if not isinstance(raw_creatures, list):
            raise StateLoadError("creatures must be a list")
        creatures = [CreatureRecord.from_dict(c) for c in raw_creatures]
        return cls(names, generation, creatures)


# ──────────────────────────────────────────────────────────────────────────────
# Stores
# ──────────────────────────────────────────────────────────────────────────────

class ChampionStore:
    """Interface the generation controller persists through."""

    def __init__(self, world_name: str = "default"):
        self.current_world = world_name

    def save_champion(self, species_name: str, brain):
        raise NotImplementedError

    def load_champion_data(self, species_name: str):
        """Return NeuralNetworkData or None when no champion exists."""
        raise NotImplementedError

    def save_world(self, world_name: str, state: WorldState):
        raise NotImplementedError

    def load_world(self, world_name: str) -> WorldState:
        raise NotImplementedError

    def list_worlds(self) -> list:
        raise NotImplementedError

    def delete_world(self, world_name: str) -> bool:
        raise NotImplementedError

    @staticmethod
    def _check_name(world_name: str):
        if not world_name:
            raise ValueError("world name cannot be empty")


class MemoryStore(ChampionStore):

    def __init__(self, world_name: str = "default"):
        super().__init__(world_name)
        self._champions = {}     # (world, species) → dict
        self._worlds    = {}     # world → dict

    def save_champion(self, species_name: str, brain):
        self._champions[(self.current_world, species_name)] = brain.get_data().to_dict()

    def load_champion_data(self, species_name: str):
        d = self._champions.get((self.current_world, species_name))
        return None if d is None else NeuralNetworkData.from_dict(d)

    def save_world(self, world_name: str, state: WorldState):
        self._check_name(world_name)
        self.current_world = world_name
        self._worlds[world_name] = state.to_dict()

    def load_world(self, world_name: str) -> WorldState:
        if world_name not in self._worlds:
            raise FileNotFoundError(f"no saved world named {world_name!r}")
        self.current_world = world_name
        return WorldState.from_dict(self._worlds[world_name])

    def list_worlds(self) -> list:
        return sorted(self._worlds)

    def delete_world(self, world_name: str) -> bool:
        found = self._worlds.pop(world_name, None) is not None
        for key in [k for k in self._champions if k[0] == world_name]:
            del self._champions[key]
            found = True
        return found


class JsonFileStore(ChampionStore):

    STATE_FILE = "worldState.json"

    def __init__(self, root: str, world_name: str = "default"):
        super().__init__(world_name)
        self.root = root

    def _world_dir(self, world_name: str) -> str:
        return os.path.join(self.root, world_name)

    def _champion_path(self, species_name: str) -> str:
        return os.path.join(self._world_dir(self.current_world), "champions",
                            f"{species_name}.json")

    def save_champion(self, species_name: str, brain):
        path = self._champion_path(species_name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(brain.get_data().to_dict(), f)

    def load_champion_data(self, species_name: str):
        path = self._champion_path(species_name)
        if not os.path.isfile(path):
            return None
        with open(path) as f:
            try:
                d = json.load(f)
            except json.JSONDecodeError as exc:
                raise GenomeError(f"{path}: {exc}") from exc
        return NeuralNetworkData.from_dict(d)

    def save_world(self, world_name: str, state: WorldState):
        self._check_name(world_name)
        self.current_world = world_name
        folder = self._world_dir(world_name)
        os.makedirs(folder, exist_ok=True)
        with open(os.path.join(folder, self.STATE_FILE), "w") as f:
            json.dump(state.to_dict(), f, indent=2)

    def load_world(self, world_name: str) -> WorldState:
        path = os.path.join(self._world_dir(world_name), self.STATE_FILE)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"save file for world {world_name!r} not found")
        with open(path) as f:
            try:
                d = json.load(f)
            except json.JSONDecodeError as exc:
                raise StateLoadError(f"{path}: {exc}") from exc
        state = WorldState.from_dict(d)
        self.current_world = world_name
        return state

    def list_worlds(self) -> list:
        if not os.path.isdir(self.root):
            return []
        return sorted(name for name in os.listdir(self.root)
                      if os.path.isdir(self._world_dir(name)))

    def delete_world(self, world_name: str) -> bool:
        folder = self._world_dir(world_name)
        if not os.path.isdir(folder):
            return False
        shutil.rmtree(folder)
        return True
