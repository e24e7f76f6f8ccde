"""Query-time orchestration.

- **conversation** -- bounded tool-using LLM conversation (state machine)
- **task_queue** -- tracked background tasks with a drain hook
- **query_pipeline** -- the tiered cache -> index -> formatter/discovery path

``QueryPipeline`` is imported from :mod:`kickflip.pipeline.query_pipeline`
directly; it depends on the services, which in turn use the conversation
module from this package.
"""

from kickflip.pipeline.conversation import (
    ConversationState,
    ConversationStep,
    Tool,
    ToolConversation,
    web_search_tool,
)
from kickflip.pipeline.task_queue import TaskQueue

__all__ = [
    "ConversationState",
    "ConversationStep",
    "TaskQueue",
    "Tool",
    "ToolConversation",
    "web_search_tool",
]
