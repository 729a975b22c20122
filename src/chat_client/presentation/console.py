"""Line-oriented console front-end."""
from __future__ import annotations

import asyncio
import getpass
import logging

from chat_client.application.exceptions import AppError
from chat_client.application.state import AppState
from chat_client.controller import ChatController
from chat_client.domain.value_objects.enums import DeliveryStatus
from chat_client.presentation.formatting import (
    avatar_initial,
    connection_status_label,
    format_message_time,
    shows_avatar,
)

logger = logging.getLogger(__name__)

HELP = (
    "/login <email>  /register <username> <email>  /users  /open <id>  /back  "
    "/logout  /quit  (anything else is sent to the open conversation)"
)


def render_contacts(state: AppState) -> str:
    convs = state.conversations
    lines = []
    for contact in convs.contacts.values():
        status = "Online" if contact.online else "Offline"
        typing = " typing..." if contact.id in convs.typing else ""
        marker = "*" if contact.id == convs.selected_id else " "
        lines.append(f"{marker}[{contact.id}] ({avatar_initial(contact.username)}) {contact.username} - {status}{typing}")
    return "\n".join(lines) or "No contacts"


def render_thread(state: AppState) -> str:
    contact = state.selected_contact
    if contact is None:
        return "Select a conversation to start messaging"
    messages = state.current_messages
    if not messages:
        return "No messages yet"
    me = state.session.user.username if state.session.user else None
    lines = []
    for index, msg in enumerate(messages):
        who = "you" if msg.is_own else contact.username
        badge = f"({avatar_initial(me if msg.is_own else contact.username)})"
        if not shows_avatar(messages, index):
            badge = " " * len(badge)
        tick = " …" if msg.delivery_status == DeliveryStatus.PENDING else ""
        lines.append(f"{badge} {format_message_time(msg.created_at)} {who}: {msg.content}{tick}")
    return "\n".join(lines)


def render_status(state: AppState) -> str:
    user = state.session.user
    conn = state.connection
    name = user.username if user else "anonymous"
    return f"{name} | {connection_status_label(conn.phase, conn.attempt, conn.max_attempts)}"


async def _prompt(text: str = "> ") -> str:
    return await asyncio.to_thread(input, text)


async def _password() -> str:
    return await asyncio.to_thread(getpass.getpass, "Password: ")


async def run_console(controller: ChatController) -> None:
    await controller.start()
    print(HELP)
    try:
        while True:
            _flush_notices(controller)
            try:
                line = await _prompt()
            except EOFError:
                break
            if not await _handle(controller, line.strip()):
                break
    finally:
        await controller.close()


def _flush_notices(controller: ChatController) -> None:
    while controller.state.notices:
        print(f"! {controller.state.notices[0].text}")
        controller.dismiss_notice(0)


async def _handle(controller: ChatController, line: str) -> bool:
    if not line:
        return True
    command, _, rest = line.partition(" ")
    args = rest.split()
    try:
        if command == "/quit":
            return False
        if command == "/login" and len(args) == 1:
            await controller.login(args[0], await _password())
            print(render_status(controller.state))
        elif command == "/register" and len(args) == 2:
            await controller.register(args[0], args[1], await _password())
        elif command == "/logout":
            await controller.logout()
        elif command == "/users":
            await controller.load_contacts()
            print(render_contacts(controller.state))
        elif command == "/open" and len(args) == 1 and args[0].isdigit():
            await controller.select_conversation(int(args[0]))
            print(render_thread(controller.state))
        elif command == "/back":
            await controller.back_to_contacts()
            print(render_contacts(controller.state))
        elif command == "/status":
            print(render_status(controller.state))
        elif command.startswith("/"):
            print(HELP)
        elif await controller.send_message(line) is None:
            print("Not sent: open a conversation and wait until connected")
    except AppError as exc:
        logger.debug("Command %s failed: %s", command, exc.detail)
    return True
