"""Demand forecast for the dashboard chart."""
from fastapi import APIRouter, Depends

from medicycle.api.deps import get_current_user
from medicycle.core.exceptions import BusinessError, WorkflowError
from medicycle.models.user import User
from medicycle.schemas.forecast import ForecastRequest, ForecastResponse
from medicycle.services.forecast_service import DEMO_HISTORY, Forecast, forecast_demand

router = APIRouter()


def _to_response(forecast: Forecast) -> dict:
    return {
        "prediction": forecast.next_value,
        "slope": round(forecast.slope, 4),
        "intercept": round(forecast.intercept, 4),
        "data": forecast.points,
    }


@router.get("/demand", response_model=ForecastResponse)
def demo_forecast(current_user: User = Depends(get_current_user)):
    """Next month's demand from the built-in six-month sample."""
    return _to_response(forecast_demand(DEMO_HISTORY))


@router.post("/demand", response_model=ForecastResponse)
def forecast(data: ForecastRequest, current_user: User = Depends(get_current_user)):
    try:
        result = forecast_demand([(p.month, p.demand) for p in data.history], horizon=data.horizon)
    except WorkflowError as e:
        raise BusinessError.from_workflow(e)
    return _to_response(result)
