"""
Assistant replies to `@eduhive` mentions.

Runs as a background task after a top-level comment mentioning the assistant
is committed. One language-model call per mention; the answer is stored as a
reply authored by the assistant under the triggering comment. Every failure
is logged and leaves no reply behind.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from eduhive.core.assistant import ASSISTANT_USER_ID, ASSISTANT_USERNAME
from eduhive.core.llm import LLMClient
from eduhive.crud.notification import create_notification
from eduhive.models.comment import Comment
from eduhive.models.post import Post
from eduhive.models.profile import Profile
from eduhive.schemas.attachment import Attachment
from eduhive.schemas.enums import AssistantRequestType, NotificationType
from eduhive.utils.attachments import parse_attachments
from eduhive.utils.cache import TTLCache

logger = logging.getLogger(__name__)

EXPLAIN_KEYWORDS = ("explain", "content", "post about", "what is", "about")
# Same bound as a comment body; longer answers are dropped, never cut
MAX_REPLY_LENGTH = 5000

_MENTION_RE = re.compile(
    rf"@{re.escape(ASSISTANT_USERNAME)}(?![A-Za-z0-9_.-])\s*(.*)$",
    re.IGNORECASE | re.DOTALL,
)

GREETING = "Always start your response with \"🤖 Hi! I'm EduHive Assistant.\""

EXPLAIN_SYSTEM_PROMPT = f"""You are EduHive Assistant, a helpful AI tutor for educational content. Your role is to:
1. Analyze educational posts and explain them in a clear, student-friendly way
2. Break down complex concepts into understandable parts
3. Provide additional context and examples when helpful
4. Encourage learning and ask follow-up questions
5. Be enthusiastic and supportive

{GREETING} and end with an encouraging message about learning."""

QUESTION_SYSTEM_PROMPT = f"""You are EduHive Assistant, a helpful AI tutor. Your role is to:
1. Answer student questions clearly and comprehensively
2. Provide educational explanations and examples
3. Break down complex topics into understandable parts
4. Encourage further learning and curiosity
5. Be supportive and enthusiastic

{GREETING} and end with an encouraging message."""


@dataclass
class AssistantRequest:
    type: AssistantRequestType
    question: Optional[str] = None


def parse_assistant_request(text: str) -> Optional[AssistantRequest]:
    """Read what the author asked of the assistant, or None if it was not mentioned."""
    match = _MENTION_RE.search(text or "")
    if not match:
        return None

    instruction = match.group(1).strip()
    command = instruction.lower()
    if not command or any(keyword in command for keyword in EXPLAIN_KEYWORDS):
        return AssistantRequest(type=AssistantRequestType.EXPLAIN)
    return AssistantRequest(type=AssistantRequestType.QUESTION, question=instruction)


def describe_attachments(attachments: Sequence[Attachment]) -> List[str]:
    lines = []
    for index, attachment in enumerate(attachments, start=1):
        if attachment.is_image:
            lines.append(f"- Image {index}: {attachment.name or 'Image file'}")
        else:
            lines.append(f"- Document {index}: {attachment.name or 'File'} ({attachment.type})")
    return lines


def build_prompt(
    request: AssistantRequest,
    post_body: str,
    author_name: Optional[str] = None,
    attachments: Sequence[Attachment] = (),
) -> Tuple[str, str, Optional[str]]:
    """Return (system prompt, user prompt, image url for the vision model)."""
    byline = f" by {author_name}" if author_name else ""

    if request.type is AssistantRequestType.QUESTION:
        user_prompt = (
            f"A student is asking: \"{request.question}\"\n\n"
            f"Context: a post{byline} that says \"{post_body}\"\n\n"
            "Please provide a helpful, educational response."
        )
        return QUESTION_SYSTEM_PROMPT, user_prompt, None

    user_prompt = f"Please explain this educational post{byline} in detail:\n\n\"{post_body}\""
    image_url = None
    if attachments:
        user_prompt += f"\n\nThis post also includes {len(attachments)} attachment(s):\n"
        user_prompt += "\n".join(describe_attachments(attachments))
        user_prompt += "\n\nPlease analyze both the text content and reference the attachments in your explanation."
        images = [a for a in attachments if a.is_image]
        if images:
            image_url = images[0].url
    return EXPLAIN_SYSTEM_PROMPT, user_prompt, image_url


async def respond_to_assistant_mention(
    session_factory: Callable,
    llm: LLMClient,
    comment_id: str,
    cache: Optional[TTLCache] = None,
) -> Optional[str]:
    """Write the assistant's reply to a comment; returns the reply id or None."""
    try:
        async with session_factory() as db:
            comment = await db.get(Comment, comment_id)
            if comment is None:
                logger.warning(f"Assistant reply skipped: comment {comment_id} no longer exists")
                return None
            if comment.parent_comment_id is not None:
                logger.info(f"Assistant reply skipped: {comment_id} is a reply")
                return None

            request = parse_assistant_request(comment.body)
            if request is None:
                return None

            post = await db.get(Post, comment.post_id)
            if post is None:
                logger.warning(f"Assistant reply skipped: post {comment.post_id} no longer exists")
                return None
            author = await db.get(Profile, post.user_id)
            attachments = parse_attachments(post.attachment_url, post.attachment_type)

            system_prompt, user_prompt, image_url = build_prompt(
                request,
                post.body,
                author.display_name if author else None,
                attachments,
            )
            answer = await llm.complete(system_prompt, user_prompt, image_url)
            if len(answer) > MAX_REPLY_LENGTH:
                logger.warning(
                    f"Assistant reply to comment {comment_id} dropped: "
                    f"{len(answer)} characters exceeds {MAX_REPLY_LENGTH}"
                )
                return None

            reply = Comment(
                post_id=comment.post_id,
                user_id=ASSISTANT_USER_ID,
                parent_comment_id=comment.id,
                body=answer,
            )
            db.add(reply)
            await db.commit()
            await db.refresh(reply)
            reply_id = reply.id
            logger.info(f"Assistant replied to comment {comment_id} with {reply_id}")

            try:
                await create_notification(db, {
                    "recipient_id": comment.user_id,
                    "actor_id": ASSISTANT_USER_ID,
                    "type": NotificationType.REPLY,
                    "message": f"{ASSISTANT_USERNAME} replied to your comment",
                    "post_id": comment.post_id,
                    "comment_id": reply_id,
                }, cache=cache)
            except Exception as e:
                logger.error(f"Failed to notify about assistant reply {reply_id}: {e}")

            return reply_id
    except Exception:
        logger.exception(f"Assistant reply to comment {comment_id} failed")
        return None
