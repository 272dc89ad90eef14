# Inbound events (client -> relay)
CREATE_ROOM = "createRoom"
JOIN = "join"
MOUSE_POSITION = "mousePosition"

# Outbound events (relay -> client)
USER_JOINED = "userJoined"
USER_LEFT = "userLeft"
# MOUSE_POSITION is reused outbound with the sender's name and color attached

# Plain WebSocket frames wrap every event as {"event": ..., "data": ...}
FRAME_EVENT_KEY = "event"
FRAME_DATA_KEY = "data"

# **Outbound payload fields**
# - `userJoined`    = {username, userId, color}
# - `mousePosition` = {username, x, y, color}
# - `userLeft`      = {userId}
