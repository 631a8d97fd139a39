# File: slotfeed/config/constants.py

# Roll range (inclusive)
ROLL_MIN = 0
ROLL_MAX = 99

# Pool names
RANDOM = "RANDOM"
TRENDING = "TRENDING"
PERSONALIZED = "PERSONALIZED"
POOLS = [RANDOM, TRENDING, PERSONALIZED]

# Pool tables: (first_roll, last_roll, pool), partition ROLL_MIN..ROLL_MAX
AUTHENTICATED_POOL_TABLE = [
    (0, 9, RANDOM),          # 10% anti-echo-chamber
    (10, 19, TRENDING),      # 10% cross-sectional content
    (20, 99, PERSONALIZED),  # 80% vector matching + social graph
]
ANONYMOUS_POOL_TABLE = [
    (0, 29, RANDOM),     # 30%
    (30, 99, TRENDING),  # 70%
]

# Fallback order on pool exhaustion
FALLBACK_ORDER = [PERSONALIZED, TRENDING, RANDOM]

# Relationship weight classes
SUBSCRIBED = "SUBSCRIBED"
FRIEND = "FRIEND"
FOLLOWED = "FOLLOWED"
RELATIONSHIP_WEIGHTS = {
    SUBSCRIBED: 2.0,
    FRIEND: 1.5,
    FOLLOWED: 1.0,
}
UNRELATED_WEIGHT = 1.0

# Geo boost by levels out: same cell, 1 up, 2 up, 3 up
GEO_BOOSTS = (1.5, 1.3, 1.15, 1.05)
GEO_NO_BOOST = 1.0

# Behavioral history caps
MAX_RECENT_LIKES = 50
MAX_RECENT_AUTHORED = 20

# Cursor token version
CURSOR_VERSION = 1
