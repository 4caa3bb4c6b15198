"""
Neurogym Configuration
All tunable parameters for the neuroevolution core and the headless arena.
"""

# ─── Arena ────────────────────────────────────────────────────────────────────
WORLD_WIDTH  = 100.0   # arena size east-west (world units)
WORLD_HEIGHT = 60.0    # arena size north-south
FOOD_COUNT   = 30      # food pellets kept alive in the arena
FOOD_ENERGY  = 50.0    # energy gained from one pellet
EAT_RADIUS   = 1.0     # distance at which a pellet is eaten
FOOD_DETECTION_RADIUS = 15.0

# ─── Simulation Clock ─────────────────────────────────────────────────────────
SIM_DT             = 0.05   # seconds of simulated time per step
GENERATION_TIME    = 20.0   # gym mode: seconds per generation
MAX_GENERATIONS    = 100    # default run length for the CLI
POPULATION_CHECK_INTERVAL = 10.0   # ecosystem mode: seconds between purges

# ─── Neural Network ───────────────────────────────────────────────────────────
INIT_WEIGHT_RANGE = 0.5     # weights/biases start uniform in [-r, r]

# ─── Creatures ────────────────────────────────────────────────────────────────
INITIAL_ENERGY           = 100.0
ENERGY_TO_REPRODUCE      = 150.0
REPRODUCTION_ENERGY_COST = 60.0
BASE_METABOLISM          = 0.5     # energy lost per second standing still
MOVE_COST                = 0.1     # extra energy per second per unit of speed
MOVE_FORCE               = 10.0
MAX_SPEED                = 8.0
SPAWN_OFFSET_RADIUS      = 2.0     # ecosystem children appear this close to parent

# ─── Evolution ────────────────────────────────────────────────────────────────
ELITE_RATIO       = 0.10    # share of target population copied unmutated
IMMIGRANT_RATIO   = 0.05    # share of target population that is fresh random
SELECTION_METHOD  = "fitness"   # "fitness" (roulette) or "rank"
GLOBAL_MUTATION_MULTIPLIER = 1.0

# Species known out of the box (name → settings).
DEFAULT_SPECIES = [
    {
        "species_name":           "forager",
        "network_layers":         [8, 6, 2],
        "initial_population":     20,
        "base_mutation_rate":     0.1,
        "base_mutation_strength": 0.1,
        "behaviour":              "forager",
    },
    {
        "species_name":           "drifter",
        "network_layers":         [4, 4, 2],
        "initial_population":     10,
        "base_mutation_rate":     0.2,
        "base_mutation_strength": 0.2,
        "behaviour":              "drifter",
    },
]

# ─── Output / Logging ─────────────────────────────────────────────────────────
SAVE_DIR           = "output"      # charts, diagrams and CSV log
SAVES_ROOT         = "saves"       # persisted worlds and champions
DEFAULT_WORLD      = "default"
SNAPSHOT_INTERVAL  = 10            # save a snapshot every N generations
SAVE_NEURAL_SAMPLE = True          # save champion brain diagrams
LOG_CSV            = True          # write per-generation CSV log
