"""
Herald Server

FastAPI server receiving Slack and GitHub webhooks and delivering the
normalized messages to the agent runtime.

Endpoints:
- POST /github/webhook: GitHub App webhook endpoint
- POST /slack/events: Slack Events API endpoint
- GET /health: Health check

Pipeline (GitHub):
1. Verify headers and HMAC signature
2. Route by event/action
3. Look up the conversation associated with the pull request
4. Send a notification to that conversation

Pipeline (Slack):
1. Verify Slack signature, answer URL verification
2. Filter events (mentions, DMs)
3. Resolve mentions/sender/channel, download attachments (background)
4. Build content parts and send them to the thread's conversation
"""

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .common.config import HeraldConfig, ensure_directories, load_config
from .common.notifier import AgentNotifier, HttpAgentNotifier
from .common.store import AssociationStore, JsonFileAssociationStore
from .github.router import GitHubWebhookRouter
from .slack.client import SlackClient
from .slack.handler import SlackEventHandler

logger = logging.getLogger("herald.server")


def create_app(
    config: Optional[HeraldConfig] = None,
    store: Optional[AssociationStore] = None,
    notifier: Optional[AgentNotifier] = None,
    slack_client: Optional[Any] = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators not passed in are created from configuration on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize components on startup"""
        cfg = config or load_config()
        owned = []

        if store is None:
            ensure_directories()
        association_store = store or JsonFileAssociationStore(Path(cfg.store.path))

        agent_notifier = notifier
        if agent_notifier is None:
            if not cfg.agent.runtime_url:
                logger.warning("Agent runtime URL not configured (HERALD_AGENT_URL)")
            agent_notifier = HttpAgentNotifier(cfg.agent.runtime_url, api_token=cfg.agent.api_token)
            owned.append(agent_notifier)

        app.state.config = cfg
        app.state.github_router = GitHubWebhookRouter(
            association_store,
            agent_notifier,
            webhook_secret=cfg.github.webhook_secret,
            bot_login=cfg.github.bot_login,
        )
        if not cfg.github.webhook_secret:
            logger.warning("GitHub webhook secret not configured, all deliveries will be rejected")

        app.state.slack_handler = None
        client = slack_client
        if client is None and cfg.slack.bot_token:
            client = SlackClient(cfg.slack.bot_token)
            owned.append(client)
        if client is not None:
            app.state.slack_handler = SlackEventHandler(
                client,
                agent_notifier,
                signing_secret=cfg.slack.signing_secret,
                supported_file_types=cfg.slack.supported_file_types,
                max_file_size=cfg.slack.max_file_size,
                max_concurrency=cfg.slack.max_concurrency,
            )
        else:
            logger.info("Slack bot token not configured, Slack endpoint disabled")

        logger.info("Herald ready to receive events")

        yield

        logger.info("Herald shutting down")
        for resource in owned:
            await resource.close()

    app = FastAPI(
        title="Herald",
        description="Inbound event normalization for chat agents",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint"""
        cfg = request.app.state.config
        return {
            "status": "healthy",
            "service": "herald",
            "github_configured": bool(cfg.github.webhook_secret),
            "slack_configured": request.app.state.slack_handler is not None,
            "agent_runtime_configured": bool(cfg.agent.runtime_url) or notifier is not None,
        }

    @app.post("/github/webhook")
    async def github_webhook(request: Request):
        """Handle GitHub App webhook deliveries."""
        body = await request.body()
        result = await request.app.state.github_router.receive(request.headers, body)
        return PlainTextResponse(result.body, status_code=result.status)

    @app.post("/slack/events")
    async def slack_events(
        request: Request,
        background_tasks: BackgroundTasks,
        x_slack_signature: Optional[str] = Header(None),
        x_slack_request_timestamp: Optional[str] = Header(None),
    ):
        """Handle Slack Events API callbacks."""
        slack_handler: Optional[SlackEventHandler] = request.app.state.slack_handler
        if not slack_handler:
            raise HTTPException(status_code=503, detail="Slack handler not configured")

        body = await request.body()

        if not slack_handler.verify_signature(
            body,
            x_slack_signature or "",
            x_slack_request_timestamp or "",
        ):
            logger.warning("Rejected Slack request: invalid signature")
            raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid JSON")

        if slack_handler.is_url_verification(data):
            return JSONResponse({"challenge": slack_handler.get_challenge(data)})

        event = data.get("event") or {}
        if data.get("type") == "event_callback" and slack_handler.should_handle(event):
            # Slack expects an answer within 3 seconds
            background_tasks.add_task(slack_handler.handle_event, event)

        return JSONResponse({"ok": True})

    return app


app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Herald server"""
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    config = load_config()
    logger.info("Starting server on %s:%d", config.server.host, config.server.port)
    uvicorn.run(
        "herald.server:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
