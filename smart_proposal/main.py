from __future__ import annotations

from fastapi import FastAPI

from smart_proposal import config
from smart_proposal.database.connection import init_db
from smart_proposal.logging_config import setup_logging
from smart_proposal.routes import (
    admin,
    agent_studio,
    chat,
    company_analysis,
    deal_writer,
    kanban,
    pollinations,
    presentations,
    scorecard,
    scraper,
    storage,
    tools,
)

app = FastAPI(title="Smart Proposal Studio")

app.include_router(chat.router)
app.include_router(pollinations.router)
app.include_router(scraper.router)
app.include_router(deal_writer.router)
app.include_router(company_analysis.router)
app.include_router(agent_studio.router)
app.include_router(kanban.router)
app.include_router(scorecard.router)
app.include_router(presentations.router)
app.include_router(tools.router)
app.include_router(storage.router)
app.include_router(admin.router)


@app.on_event("startup")
async def startup_event() -> None:
    setup_logging(config.LOG_LEVEL)
    init_db()
