"""Channel names shared by the publisher and its subscribers."""


def chat_channel(room_id: int) -> str:
    return f"chat:{room_id}"


def user_channel(user_id: int) -> str:
    return f"user:{user_id}"
