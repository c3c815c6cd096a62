# Stat keys held in the Stats component. Moodle-style stats are normalised to 0..1.
STAT_HUNGER = "hunger"
STAT_THIRST = "thirst"
STAT_FATIGUE = "fatigue"
STAT_ENDURANCE = "endurance"

# Body parts that can accumulate stiffness. Each part is its own stat key,
# prefixed so that bindings can address the whole group.
STIFFNESS_PREFIX = "stiffness."
STIFFNESS_BODY_PARTS = (
    "forearm_l",
    "forearm_r",
    "upper_arm_l",
    "upper_arm_r",
    "torso_upper",
    "torso_lower",
    "upper_leg_l",
    "upper_leg_r",
    "lower_leg_l",
    "lower_leg_r",
)
STIFFNESS_STATS = tuple(STIFFNESS_PREFIX + part for part in STIFFNESS_BODY_PARTS)
STIFFNESS_MAX = 100.0

# Progression skills referenced by the default catalog and hooks.
SKILL_BODY = "body"
SKILL_FITNESS = "fitness"
SKILL_STRENGTH = "strength"

# Change below these thresholds is treated as floating point noise.
MOODLE_EPSILON = 0.00001
STIFFNESS_EPSILON = 0.01

# Drift direction of a stat while the subject is under strain.
DRIFT_INCREASE = "increase"
DRIFT_DECREASE = "decrease"

# Decay protection restores up to this much XP per triggered decay.
DECAY_RESTORE_XP = 50.0

# XP multiplier clamp applied by the body XP hook.
MIN_XP_MULTIPLIER = 0.0
MAX_XP_MULTIPLIER = 2.0

# Attack endurance costs (estimated).
BASE_SWING_COST = 0.5
WEIGHT_COST_MULTIPLIER = 0.1
MIN_SWING_REFUND = 0.01

# Progression thresholds used by ProgressionSystem.
XP_PER_LEVEL = 150.0
MAX_LEVEL = 10
