# fxdojo/modules/dashboard/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.dashboard.service import DashboardService
from fxdojo.schemas.dashboard import LeaderboardEntry, UserStatistics

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/statistics", response_model=UserStatistics)
def my_statistics(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return DashboardService(db).user_statistics(current_user)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def leaderboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return DashboardService(db).leaderboard()
