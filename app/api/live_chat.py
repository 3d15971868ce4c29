"""Live support chat: REST endpoints plus a WebSocket room feed"""
from datetime import datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_realtime, require_admin
from app.database import SessionLocal, get_db
from app.errors import NotFoundError
from app.models.chat import ChatMessage, ChatSession
from app.models.user import User
from app.schemas.chat import (
    AdminReply,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatSessionResponse,
    ChatStatusUpdate,
    ChatSummary,
)
from app.utils.auth import generate_id
from app.utils.jwt_utils import decode_access_token
from app.utils.logger import logger
from app.utils.realtime import ADMINS_ROOM, RoomManager, chat_room, user_room

router = APIRouter(prefix="/live-chat", tags=["live-chat"])

WELCOME_MESSAGE = "Hi! Thanks for reaching out. A member of our team will reply shortly."


def _message_payload(message: ChatMessage) -> dict:
    return ChatMessageResponse.model_validate(message).model_dump(mode="json")


def _open_chat(db: Session, user_id: str) -> ChatSession:
    """The user's open chat, created with a bot greeting when there is none"""
    chat = db.query(ChatSession).filter(
        ChatSession.user_id == user_id,
        ChatSession.status == "open",
    ).order_by(ChatSession.created_at.desc()).first()
    if chat:
        return chat

    chat = ChatSession(chat_id=generate_id("cht_"), user_id=user_id)
    db.add(chat)
    db.flush()
    db.add(ChatMessage(chat_id=chat.chat_id, sender="bot", text=WELCOME_MESSAGE))
    db.commit()
    db.refresh(chat)
    logger.info(f"Chat started: {chat.chat_id}", extra={"user_id": user_id, "action": "chat_start"})
    return chat


def _add_message(db: Session, chat: ChatSession, sender: str, sender_id: str, text: str) -> ChatMessage:
    message = ChatMessage(chat_id=chat.chat_id, sender=sender, sender_id=sender_id, text=text)
    db.add(message)
    chat.last_message_at = datetime.utcnow()
    db.commit()
    db.refresh(message)
    return message


# ---------------------------------------------------------------------------
# Learner
# ---------------------------------------------------------------------------

@router.post("/start", response_model=ChatSessionResponse)
def start_chat(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Return the caller's open chat, starting one if needed"""
    return _open_chat(db, user.user_id)


@router.post("/send", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    data: ChatMessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    realtime: RoomManager = Depends(get_realtime),
):
    chat = _open_chat(db, user.user_id)
    message = _add_message(db, chat, "user", user.user_id, data.text)

    payload = {"chat_id": chat.chat_id, "message": _message_payload(message)}
    background_tasks.add_task(realtime.emit, chat_room(chat.chat_id), "newMessage", payload)
    background_tasks.add_task(realtime.emit, ADMINS_ROOM, "chatUpdated", payload)
    return message


@router.get("/messages", response_model=ChatSessionResponse)
def get_messages(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The caller's open chat with its history; staff replies are marked read"""
    chat = _open_chat(db, user.user_id)
    db.query(ChatMessage).filter(
        ChatMessage.chat_id == chat.chat_id,
        ChatMessage.sender != "user",
        ChatMessage.is_read == False,
    ).update({ChatMessage.is_read: True}, synchronize_session=False)
    db.commit()
    db.refresh(chat)
    return chat


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def _get_chat_or_404(db: Session, chat_id: str) -> ChatSession:
    chat = db.query(ChatSession).filter(ChatSession.chat_id == chat_id).first()
    if not chat:
        raise NotFoundError("Chat not found")
    return chat


@router.get("/admin/chats", response_model=List[ChatSummary])
def list_chats(
    chat_status: str = "open",
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    """Chats with unread user message counts, most recently active first"""
    unread = dict(
        db.query(ChatMessage.chat_id, func.count(ChatMessage.id)).filter(
            ChatMessage.sender == "user",
            ChatMessage.is_read == False,
        ).group_by(ChatMessage.chat_id).all()
    )

    query = db.query(ChatSession)
    if chat_status != "all":
        query = query.filter(ChatSession.status == chat_status)

    summaries = []
    for chat in query.order_by(ChatSession.last_message_at.desc()).all():
        last = chat.messages[-1] if chat.messages else None
        summaries.append(ChatSummary(
            chat_id=chat.chat_id,
            user_id=chat.user_id,
            username=chat.user.username,
            email=chat.user.email,
            status=chat.status,
            last_message=last.text if last else None,
            unread_count=unread.get(chat.chat_id, 0),
            last_message_at=chat.last_message_at,
        ))
    return summaries


@router.get("/admin/chats/{chat_id}", response_model=ChatSessionResponse)
def get_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
):
    chat = _get_chat_or_404(db, chat_id)
    db.query(ChatMessage).filter(
        ChatMessage.chat_id == chat_id,
        ChatMessage.sender == "user",
        ChatMessage.is_read == False,
    ).update({ChatMessage.is_read: True}, synchronize_session=False)
    db.commit()
    db.refresh(chat)
    return chat


@router.post("/admin/reply", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
def admin_reply(
    data: AdminReply,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
    realtime: RoomManager = Depends(get_realtime),
):
    chat = _get_chat_or_404(db, data.chat_id)
    if chat.status == "closed":
        chat.status = "open"
    message = _add_message(db, chat, "admin", admin_id, data.text)

    payload = {"chat_id": chat.chat_id, "message": _message_payload(message)}
    background_tasks.add_task(realtime.emit, chat_room(chat.chat_id), "newMessage", payload)
    background_tasks.add_task(realtime.emit, user_room(chat.user_id), "newMessage", payload)
    background_tasks.add_task(realtime.emit, ADMINS_ROOM, "chatUpdated", payload)
    return message


@router.put("/admin/status")
def update_chat_status(
    data: ChatStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
    realtime: RoomManager = Depends(get_realtime),
):
    chat = _get_chat_or_404(db, data.chat_id)
    chat.status = data.status
    db.commit()

    logger.info(f"Chat {chat.chat_id} {data.status}", extra={"admin_id": admin_id, "action": "chat_status"})
    payload = {"chat_id": chat.chat_id, "status": chat.status}
    background_tasks.add_task(realtime.emit, chat_room(chat.chat_id), "chatStatus", payload)
    background_tasks.add_task(realtime.emit, ADMINS_ROOM, "chatUpdated", payload)
    return {"success": True, "chat_id": chat.chat_id, "status": chat.status}


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------

def _authenticate_socket(token: str):
    """Returns (kind, subject) for a session token, or None"""
    db = SessionLocal()
    try:
        payload = decode_access_token(token, db)
    except HTTPException:
        return None
    finally:
        db.close()
    return payload["type"], payload["sub"]


def _may_join(kind: str, subject: str, room: str) -> bool:
    if kind == "admin":
        return True
    if room == user_room(subject):
        return True
    if not room.startswith("chat:"):
        return False

    db = SessionLocal()
    try:
        return db.query(ChatSession).filter(
            ChatSession.chat_id == room[len("chat:"):],
            ChatSession.user_id == subject,
        ).first() is not None
    finally:
        db.close()


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, token: str = ""):
    """
    Realtime feed

    Admins join the admins room and users their own room on connect.
    Clients send ``{"action": "join" | "leave", "room": "chat:<id>"}``
    to follow individual chats.
    """
    identity = _authenticate_socket(token) if token else None
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    kind, subject = identity
    realtime: RoomManager = websocket.app.state.realtime
    await realtime.connect(websocket)
    realtime.join(websocket, ADMINS_ROOM if kind == "admin" else user_room(subject))

    try:
        while True:
            frame = await websocket.receive_json()
            action = frame.get("action") if isinstance(frame, dict) else None
            room = frame.get("room") if isinstance(frame, dict) else None
            if action not in ("join", "leave") or not isinstance(room, str):
                await websocket.send_json({"event": "error", "data": {"message": "Unknown frame"}})
                continue

            if action == "leave":
                realtime.leave(websocket, room)
            elif _may_join(kind, subject, room):
                realtime.join(websocket, room)
                await websocket.send_json({"event": "joined", "data": {"room": room}})
            else:
                await websocket.send_json({"event": "error", "data": {"message": "Not allowed to join room"}})
    except WebSocketDisconnect:
        pass
    finally:
        realtime.disconnect(websocket)
