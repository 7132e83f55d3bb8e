from deskpress.db.models.event import Event, EventDay, EventSuspension
from deskpress.db.models.invite import Invite
from deskpress.db.models.post import Author, Category, Post, Tag, post_tags
from deskpress.db.models.user import User

__all__ = ["Author", "Category", "Event", "EventDay", "EventSuspension", "Invite", "Post", "Tag", "User", "post_tags"]
