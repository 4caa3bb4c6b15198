"""
Headless arena for Neurogym.

A bounded 2-D rectangle holding food pellets. Creatures move with a
simple velocity integration; the arena answers the sensing questions
their behaviours ask (nearest food, wall proximity) and hands out spawn
points to the generation controller.
"""

import numpy as np

from config import (WORLD_WIDTH, WORLD_HEIGHT, FOOD_COUNT, FOOD_ENERGY,
                    EAT_RADIUS, MAX_SPEED)


class World:
    """
    Owns the food field and clamps creature movement to the arena bounds.
    """

    def __init__(self, width: float = WORLD_WIDTH, height: float = WORLD_HEIGHT,
                 seed: int = None, food_count: int = FOOD_COUNT, rng=None):
        self.width  = float(width)
        self.height = float(height)
        self.rng    = rng if rng is not None else np.random.default_rng(seed)
        self.food_count = food_count
        # food[i] = (x, y)
        self.food   = np.zeros((0, 2), dtype=np.float64)
        self.meals_eaten = 0     # reset each generation
        self.spawn_food(food_count)

    # ──────────────────────────────────────────────────────────────────────────
    # Placement helpers
    # ──────────────────────────────────────────────────────────────────────────

    def get_spawn_point(self) -> tuple:
        """Random point inside the arena, away from the walls."""
        margin = 1.0
        x = self.rng.uniform(margin, self.width - margin)
        y = self.rng.uniform(margin, self.height - margin)
        return (float(x), float(y))

    def clamp(self, x: float, y: float) -> tuple:
        return (float(min(max(x, 0.0), self.width)),
                float(min(max(y, 0.0), self.height)))

    def spawn_food(self, count: int):
        if count <= 0:
            return
        xs = self.rng.uniform(0, self.width,  size=count)
        ys = self.rng.uniform(0, self.height, size=count)
        self.food = np.vstack([self.food, np.column_stack([xs, ys])])

    def reset(self):
        """Fresh food field for a new generation."""
        self.food = np.zeros((0, 2), dtype=np.float64)
        self.meals_eaten = 0
        self.spawn_food(self.food_count)

    # ──────────────────────────────────────────────────────────────────────────
    # Movement
    # ──────────────────────────────────────────────────────────────────────────

    def move_creature(self, creature, dt: float):
        """
        Integrate velocity over dt. Hitting a wall stops motion along
        that axis.
        """
        vx, vy = creature.velocity
        speed = np.hypot(vx, vy)
        if speed > MAX_SPEED:
            vx, vy = vx / speed * MAX_SPEED, vy / speed * MAX_SPEED
        x, y = creature.position[0] + vx * dt, creature.position[1] + vy * dt
        nx, ny = self.clamp(x, y)
        if nx != x:
            vx = 0.0
        if ny != y:
            vy = 0.0
        creature.position = (nx, ny)
        creature.velocity = (float(vx), float(vy))

    # ──────────────────────────────────────────────────────────────────────────
    # Sensing helpers (used by behaviours)
    # ──────────────────────────────────────────────────────────────────────────

    def nearest_food(self, x: float, y: float, radius: float = None):
        """Return (index, dx, dy, distance) of the closest pellet, or None."""
        if len(self.food) == 0:
            return None
        d = self.food - np.array([x, y])
        dist = np.hypot(d[:, 0], d[:, 1])
        i = int(np.argmin(dist))
        if radius is not None and dist[i] > radius:
            return None
        return i, float(d[i, 0]), float(d[i, 1]), float(dist[i])

    def try_eat(self, x: float, y: float) -> float:
        """Eat the closest pellet within EAT_RADIUS; returns energy gained."""
        hit = self.nearest_food(x, y, EAT_RADIUS)
        if hit is None:
            return 0.0
        self.food = np.delete(self.food, hit[0], axis=0)
        self.meals_eaten += 1
        self.spawn_food(1)
        return FOOD_ENERGY

    def wall_proximity(self, x: float, y: float) -> tuple:
        """1 = touching a wall, 0 = centre, per axis."""
        px = 1.0 - min(x, self.width - x)  / (self.width / 2)
        py = 1.0 - min(y, self.height - y) / (self.height / 2)
        return (px, py)

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot for visualisation
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self, creatures):
        """
        Returns two lists for visualisation:
          positions: (x, y) for every living creature
          colors:    (r, g, b) tuples
        """
        positions = []
        colors    = []
        for c in creatures:
            if c.alive:
                positions.append(tuple(c.position[:2]))
                colors.append(c.color)
        return positions, colors
