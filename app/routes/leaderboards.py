from fastapi import APIRouter, Depends
from app.dependencies import get_leaderboard_aggregator
from app.schemas import LeaderboardOut, MessageResponse
from app.services.leaderboard import LeaderboardAggregator
from app.utils.auth_utils import get_current_user

router = APIRouter()

@router.get("/{quiz_id}", response_model=LeaderboardOut)
async def get_leaderboard(quiz_id: str,
                          current_user: dict = Depends(get_current_user),
                          leaderboards: LeaderboardAggregator = Depends(get_leaderboard_aggregator)):
    """Get the top ranked entries for a quiz"""
    return leaderboards.get_leaderboard(quiz_id)

@router.delete("/{quiz_id}", response_model=MessageResponse)
async def reset_leaderboard(quiz_id: str,
                            current_user: dict = Depends(get_current_user),
                            leaderboards: LeaderboardAggregator = Depends(get_leaderboard_aggregator)):
    """Clear a quiz's leaderboard (quiz creator only)"""
    leaderboards.reset_leaderboard(quiz_id, current_user)
    return MessageResponse(message="Leaderboard reset successfully")

@router.get("/{quiz_id}/standings", response_model=LeaderboardOut)
async def get_full_standings(quiz_id: str,
                             current_user: dict = Depends(get_current_user),
                             leaderboards: LeaderboardAggregator = Depends(get_leaderboard_aggregator)):
    """Rank every submission for a quiz (quiz creator only)"""
    return leaderboards.full_standings(quiz_id, current_user)
