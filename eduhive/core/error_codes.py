"""
Error codes returned in the `error_code` field of error responses.
"""

# Posts
POST_NOT_FOUND = "POST_NOT_FOUND"
POST_CREATION_ERROR = "POST_CREATION_ERROR"
POST_UPDATE_ERROR = "POST_UPDATE_ERROR"
POST_UPDATE_PERMISSION_DENIED = "POST_UPDATE_PERMISSION_DENIED"
POST_DELETE_PERMISSION_DENIED = "POST_DELETE_PERMISSION_DENIED"
INVALID_POST_DATA = "INVALID_POST_DATA"

# Comments
COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"
COMMENT_CREATION_ERROR = "COMMENT_CREATION_ERROR"
COMMENT_DELETE_PERMISSION_DENIED = "COMMENT_DELETE_PERMISSION_DENIED"

# Reactions
LIKE_UPDATE_ERROR = "LIKE_UPDATE_ERROR"
BOOKMARK_UPDATE_ERROR = "BOOKMARK_UPDATE_ERROR"

# Profiles and the social graph
PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
PROFILE_DEACTIVATED = "PROFILE_DEACTIVATED"
USERNAME_TAKEN = "USERNAME_TAKEN"
USERNAME_INVALID = "USERNAME_INVALID"
USERNAME_CHANGE_TOO_SOON = "USERNAME_CHANGE_TOO_SOON"
CANNOT_FOLLOW_SELF = "CANNOT_FOLLOW_SELF"
ACCOUNT_NOT_DEACTIVATED = "ACCOUNT_NOT_DEACTIVATED"
ACCOUNT_REACTIVATION_EXPIRED = "ACCOUNT_REACTIVATION_EXPIRED"
ACCOUNT_DEACTIVATION_ERROR = "ACCOUNT_DEACTIVATION_ERROR"

# Notifications
NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"

# Reports
REPORT_CREATION_ERROR = "REPORT_CREATION_ERROR"
INVALID_REPORT_TARGET = "INVALID_REPORT_TARGET"
