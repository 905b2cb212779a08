import enum


class NotificationType(str, enum.Enum):
    task_assigned = "task_assigned"
    task_updated = "task_updated"
    deadline_approaching = "deadline_approaching"
    task_completed = "task_completed"
    comment_added = "comment_added"
    extension_requested = "extension_requested"
    extension_response = "extension_response"
    project_update = "project_update"
    leader_invitation = "leader_invitation"
    system = "system"
    generic = "generic"


class RelatedType(str, enum.Enum):
    personal_task = "personal_task"
    professional_task = "professional_task"
    personal_project = "personal_project"
    professional_project = "professional_project"
    comment = "comment"
