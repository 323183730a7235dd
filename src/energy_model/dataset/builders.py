"""Helpers for assembling datasets in code, used by tests and demos."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from energy_model.constants import (
    ARROW_CONCEPT,
    BALANCE_CONCEPT,
    BOUND_KEY,
    BOUND_UPPER,
    BOUNDARY_CONDITION_CONCEPT,
    CAPACITY_CONCEPT,
    COMMODITY_CONCEPT,
    CONVERSION_CONCEPT,
    COST_CONCEPT,
    DIRECTION_IN,
    DIRECTION_KEY,
    DIRECTION_OUT,
    FLOW_CONCEPT,
    HORIZON_CONCEPT,
    PARAM_CONCEPT,
    POWER_COMMODITY,
    PRICE_CONCEPT,
    RHSTERM_CONCEPT,
    SLACK_ARROW_PREFIX,
    SLACK_FLOW_PREFIX,
    STORAGE_CONCEPT,
    TIMEPERIOD_CONCEPT,
    WHICH_CONCEPT,
    WHICH_INSTANCE,
)
from energy_model.dataset.keys import DataElement

Elements = list[DataElement]


def add_element(elements: Elements, concept: str, type_name: str, instance: str, **attributes: Any) -> None:
    elements.append(DataElement(concept, type_name, instance, attributes))


def add_horizon(elements: Elements, name: str, num_periods: int, period: timedelta) -> None:
    add_element(elements, HORIZON_CONCEPT, "SequentialHorizon", name, NumPeriods=num_periods, Period=period)


def add_commodity(elements: Elements, name: str, horizon: Any) -> None:
    add_element(elements, COMMODITY_CONCEPT, "BaseCommodity", name, Horizon=horizon)


def add_flow(elements: Elements, name: str) -> None:
    add_element(elements, FLOW_CONCEPT, "BaseFlow", name)


def add_storage(elements: Elements, name: str, balance: str) -> None:
    add_element(elements, STORAGE_CONCEPT, "BaseStorage", name, Balance=balance)


def add_arrow(
    elements: Elements,
    name: str,
    conversion: Any,
    flow: str,
    balance: str,
    direction: str,
) -> None:
    add_element(
        elements,
        ARROW_CONCEPT,
        "BaseArrow",
        name,
        **{
            CONVERSION_CONCEPT: conversion,
            FLOW_CONCEPT: flow,
            BALANCE_CONCEPT: balance,
            DIRECTION_KEY: direction,
        },
    )


def add_capacity(
    elements: Elements,
    name: str,
    bound: str,
    param: Any,
    which_instance: str,
    which_concept: str = FLOW_CONCEPT,
) -> None:
    add_element(
        elements,
        CAPACITY_CONCEPT,
        "PositiveCapacity",
        name,
        **{
            WHICH_CONCEPT: which_concept,
            WHICH_INSTANCE: which_instance,
            PARAM_CONCEPT: param,
            BOUND_KEY: bound,
        },
    )


def add_balance(elements: Elements, name: str, commodity: str) -> None:
    """Add a balance; power balances also get a free slack flow so they are always feasible."""
    add_element(elements, BALANCE_CONCEPT, "BaseBalance", name, Commodity=commodity)
    if commodity == POWER_COMMODITY:
        slack_name = f"{SLACK_FLOW_PREFIX}{name}"
        add_flow(elements, slack_name)
        add_arrow(elements, f"{SLACK_ARROW_PREFIX}{name}", 1.0, slack_name, name, DIRECTION_OUT)


def add_exogen_balance(elements: Elements, name: str, commodity: str, price: Any) -> None:
    add_element(elements, BALANCE_CONCEPT, "ExogenBalance", name, Commodity=commodity, Price=price)


def add_rhs_term(
    elements: Elements,
    name: str,
    balance: str,
    direction: str,
    param: Any = None,
) -> None:
    """The parameter defaults to a Param with the same name as the term."""
    add_element(
        elements,
        RHSTERM_CONCEPT,
        "BaseRHSTerm",
        name,
        Balance=balance,
        Param=name if param is None else param,
        Direction=direction,
    )


def add_cost(
    elements: Elements,
    name: str,
    param: Any,
    which_instance: str,
    which_concept: str = FLOW_CONCEPT,
    direction: str = DIRECTION_IN,
) -> None:
    add_element(
        elements,
        COST_CONCEPT,
        "CostTerm",
        name,
        **{
            WHICH_CONCEPT: which_concept,
            WHICH_INSTANCE: which_instance,
            PARAM_CONCEPT: param,
            DIRECTION_KEY: direction,
        },
    )


def add_param(elements: Elements, type_name: str, name: str, level: Any, profile: Any) -> None:
    add_element(elements, PARAM_CONCEPT, type_name, name, Level=level, Profile=profile)


def add_price(elements: Elements, name: str, param: Any) -> None:
    add_element(elements, PRICE_CONCEPT, "BasePrice", name, Param=param)


def add_scenario_time_period(elements: Elements, name: str, start: datetime, stop: datetime) -> None:
    add_element(elements, TIMEPERIOD_CONCEPT, "ScenarioTimePeriod", name, Start=start, Stop=stop)


def add_start_equal_stop(
    elements: Elements,
    name: str,
    which_instance: str,
    which_concept: str = STORAGE_CONCEPT,
) -> None:
    add_element(
        elements,
        BOUNDARY_CONDITION_CONCEPT,
        "StartEqualStop",
        name,
        **{WHICH_CONCEPT: which_concept, WHICH_INSTANCE: which_instance},
    )


def add_power_transmission(
    elements: Elements,
    from_balance: str,
    to_balance: str,
    capacity: Any,
    efficiency: float,
) -> None:
    """A line from one power balance to another, capacity in MW, losing ``1 - efficiency``."""
    flow_name = f"{from_balance}->{to_balance}"
    add_flow(elements, flow_name)
    add_arrow(elements, f"{flow_name}From", 1.0, flow_name, from_balance, DIRECTION_OUT)
    add_arrow(elements, f"{flow_name}To", efficiency, flow_name, to_balance, DIRECTION_IN)
    capacity_name = f"{flow_name}Cap"
    add_param(elements, "MWToGWhSeriesParam", f"{capacity_name}Param", capacity, 1.0)
    add_capacity(elements, capacity_name, BOUND_UPPER, f"{capacity_name}Param", flow_name)


def add_battery(
    elements: Elements,
    name: str,
    power_balance: str,
    storage_capacity: Any,
    loss: float,
    charge_capacity: Any,
    commodity: str = "Battery",
) -> None:
    """A storage behind its own balance, charged and discharged through two flows."""
    balance_name = f"BatteryBalance_{name}"
    add_balance(elements, balance_name, commodity)
    storage_name = f"BatteryStorage_{name}"
    add_storage(elements, storage_name, balance_name)
    add_capacity(elements, f"BatteryStorageCap_{name}", BOUND_UPPER, storage_capacity, storage_name, STORAGE_CONCEPT)

    charge_name = f"PlantCharge_{name}"
    add_flow(elements, charge_name)
    add_arrow(elements, f"ChargePowerArrow_{name}", 1.0, charge_name, power_balance, DIRECTION_OUT)
    add_arrow(elements, f"ChargeBatteryArrow_{name}", 1.0 - loss, charge_name, balance_name, DIRECTION_IN)
    add_capacity(elements, f"ChargeCapacity_{name}", BOUND_UPPER, charge_capacity, charge_name)

    discharge_name = f"PlantDischarge_{name}"
    add_flow(elements, discharge_name)
    add_arrow(elements, f"DischargePowerArrow_{name}", 1.0, discharge_name, power_balance, DIRECTION_IN)
    add_arrow(elements, f"DischargeBatteryArrow_{name}", 1.0, discharge_name, balance_name, DIRECTION_OUT)
    add_capacity(elements, f"DischargeCapacity_{name}", BOUND_UPPER, charge_capacity, discharge_name)
