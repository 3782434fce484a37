"""Export endpoints for draft boards."""

from __future__ import annotations

import io

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

import pandas as pd

from ..errors import DraftError
from ..services import draft_tracker, player_pool

router = APIRouter()

BOARD_COLUMNS = ["Pick", "Round", "Team", "Player", "Position", "Kind"]


def build_board(draft_id: str) -> pd.DataFrame:
    """One row per committed pick, in pick order."""
    snapshot = draft_tracker.get_draft_state(draft_id)
    kinds = {t.id: t.kind.value for t in snapshot.teams}

    rows = []
    for pick in snapshot.picks:
        player = player_pool.get_player(pick.player_id)
        rows.append({
            "Pick": pick.pick_number,
            "Round": pick.round,
            "Team": pick.team_name,
            "Player": pick.player_name,
            "Position": player.position if player else None,
            "Kind": kinds.get(pick.team_id, ""),
        })
    return pd.DataFrame(rows, columns=BOARD_COLUMNS)


@router.get("/drafts/{draft_id}")
async def export_draft_board(
    draft_id: str,
    format: str = Query("csv", description="Export format: 'csv' or 'xlsx'"),
):
    """Export the pick ledger of a draft as a spreadsheet."""
    try:
        df = build_board(draft_id)
    except DraftError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    filename = f"draft_{draft_id}"
    if format.lower() == "xlsx":
        buf = io.BytesIO()
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Draft Board")
        buf.seek(0)
        return StreamingResponse(
            buf,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
        )
    else:
        buf = io.StringIO()
        df.to_csv(buf, index=False)
        buf.seek(0)
        return StreamingResponse(
            buf,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )
