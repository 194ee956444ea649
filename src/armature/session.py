"""Per-session wiring of the tool-execution components."""

import logging
from pathlib import Path
from typing import Optional

from armature.agent.executor import EventCallback, ToolExecutor
from armature.approval.controller import ApprovalController
from armature.approval.models import ApprovalSurface
from armature.checkpoint.service import CheckpointError, CheckpointService
from armature.config.loader import load_config
from armature.config.schema import Config
from armature.mcp.manager import McpClientManager
from armature.tools.builtin.registry_utils import register_builtin_tools
from armature.tools.registry import DiscoveryReport, ToolRegistry

logger = logging.getLogger(__name__)


class ToolSession:
    """Registry, MCP connections, approval state, checkpoints and executor
    for one interactive session.

    Nothing here is global: two sessions never share state.

    Example:
        async with ToolSession(Path.cwd(), config, approval_surface=prompt) as session:
            result = await session.executor.execute(ToolCall(name="read_file", args={...}))
    """

    def __init__(
        self,
        root: Path,
        config: Optional[Config] = None,
        approval_surface: Optional[ApprovalSurface] = None,
        event_callback: Optional[EventCallback] = None,
        history_dir: Optional[Path] = None,
    ):
        """Initialize the session.

        Args:
            root: Project root the tools operate on
            config: Configuration (defaults if None)
            approval_surface: Callback asking the user to confirm tool calls
            event_callback: Optional callback for tool execution events
            history_dir: Override for the checkpoint history directory
        """
        self.root = Path(root).expanduser().resolve()
        self.config = config or Config()

        self.mcp_manager = McpClientManager()
        self.registry = ToolRegistry(self.config, self.mcp_manager, self.root)
        register_builtin_tools(self.registry, self.root, self.config.tools)

        self.approval = ApprovalController(self.config.approval.mode, approval_surface)
        self.checkpoints = CheckpointService(
            self.root,
            history_dir=history_dir,
            max_checkpoints=self.config.checkpoint.max_checkpoints,
        )
        self.executor = ToolExecutor(
            self.registry,
            self.approval,
            checkpoints=self.checkpoints,
            checkpoint_config=self.config.checkpoint,
            event_callback=event_callback,
        )
        self.discovery: Optional[DiscoveryReport] = None

    @classmethod
    def from_project(cls, root: Path, **kwargs) -> "ToolSession":
        """Create a session with configuration loaded for a project.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        return cls(root, config=load_config(project_path=Path(root)), **kwargs)

    async def start(self, discover: bool = True) -> "ToolSession":
        """Discover tools and prepare checkpointing.

        Args:
            discover: Run tool discovery (subprocess command and MCP servers)
        """
        if discover:
            self.discovery = await self.registry.discover_tools()

        if self.config.checkpoint.enable:
            try:
                await self.checkpoints.initialize()
            except CheckpointError as e:
                # Mutating calls retry and apply the checkpoint policy
                logger.warning(f"Checkpointing unavailable: {e}")
        return self

    async def close(self) -> None:
        """Shut down MCP servers and drop discovered tools."""
        await self.registry.close()

    async def __aenter__(self) -> "ToolSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
