"""
Shared constants for Coin Arena.
Used by both server and client.
"""

# =============================================================================
# NETWORK SETTINGS
# =============================================================================
SERVER_HOST = "localhost"
SERVER_PORT = 8765

# One-way artificial latency in seconds, applied on both ends (~400ms round trip)
SIMULATED_LATENCY = 0.200

# =============================================================================
# GAME WORLD SETTINGS
# =============================================================================
WORLD_WIDTH = 800
WORLD_HEIGHT = 600

# =============================================================================
# PLAYER SETTINGS
# =============================================================================
PLAYER_RADIUS = 15
PLAYER_SIZE = PLAYER_RADIUS * 2  # Side of the drawn square
PLAYER_STEP = 5  # Units moved per applied intent
PLAYER_SPAWN_MARGIN = 30  # Keep fresh spawns away from the edges

# =============================================================================
# COIN SETTINGS
# =============================================================================
COIN_RADIUS = 10
COIN_COLOR = (255, 215, 0)  # Gold
COIN_SPAWN_INTERVAL = 3.0  # Seconds between scheduled spawns
COIN_SPAWN_MARGIN = 20
COIN_SPAWN_BUFFER = 20  # Extra clearance from players on top of both radii
COIN_SPAWN_ATTEMPTS = 10
PICKUP_THRESHOLD_SQ = (PLAYER_RADIUS + COIN_RADIUS) ** 2

# =============================================================================
# GAME SETTINGS
# =============================================================================
MIN_PLAYERS = 2  # Fewer than this and intents are ignored
WIN_SCORE = 5
SERVER_TICK_RATE = 30  # Simulation ticks per second
RESET_DELAY = 1.2  # Seconds between game over and reset
POST_RESET_PAUSE = 0.6  # No state broadcasts for this long after a reset

# =============================================================================
# CLIENT SETTINGS
# =============================================================================
CLIENT_FPS = 60
SMOOTHING_FACTOR = 0.1  # Fraction of remaining distance covered per frame
