"""Concept names and attribute keys shared by datasets and handlers."""

from __future__ import annotations

BALANCE_CONCEPT = "Balance"
FLOW_CONCEPT = "Flow"
STORAGE_CONCEPT = "Storage"
COMMODITY_CONCEPT = "Commodity"
ARROW_CONCEPT = "Arrow"
PARAM_CONCEPT = "Param"
COST_CONCEPT = "Cost"
RHSTERM_CONCEPT = "RHSTerm"
METADATA_CONCEPT = "Metadata"
BOUNDARY_CONDITION_CONCEPT = "BoundaryCondition"
CAPACITY_CONCEPT = "Capacity"
PRICE_CONCEPT = "Price"
CONVERSION_CONCEPT = "Conversion"
LOSS_CONCEPT = "Loss"
TIMEINDEX_CONCEPT = "TimeIndex"
TIMEVALUES_CONCEPT = "TimeValues"
TIMEVECTOR_CONCEPT = "TimeVector"
TIMEPERIOD_CONCEPT = "TimePeriod"
HORIZON_CONCEPT = "Horizon"

WHICH_CONCEPT = "WhichConcept"
WHICH_INSTANCE = "WhichInstance"

DIRECTION_KEY = "Direction"
DIRECTION_IN = "In"
DIRECTION_OUT = "Out"

BOUND_KEY = "Bound"
BOUND_UPPER = "Upper"
BOUND_LOWER = "Lower"

LOSS_FACTOR_KEY = "LossFactor"
UTILIZATION_KEY = "Utilization"

POWER_COMMODITY = "Power"
SLACK_FLOW_PREFIX = "SlackVar"
SLACK_ARROW_PREFIX = "SlackArrow"

STORAGE_HINT_KEY = "Storagehint"
RESIDUAL_HINT_KEY = "Residualhint"
