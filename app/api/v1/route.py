from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_principal
from app.model.agent.agent_request import StatusRequest
from app.model.agent.agent_response import AgentStatusResponse, PerformanceResponse
from app.model.auth.principal import Principal
from app.model.chat.chat_request import ChatMessageRequest
from app.model.chat.chat_response import ChatMessageResponse
from app.model.complaint.complaint_request import ComplaintRequest
from app.model.complaint.complaint_response import ComplaintActionResponse, ComplaintResponse
from app.service.support.support import SupportService, get_support_service

api_router = APIRouter(prefix="/support")


@api_router.post("/complaints", response_model=ComplaintActionResponse, status_code=201)
async def create_complaint(
    req: ComplaintRequest,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    complaint = await service.submit_complaint(principal, req)
    return ComplaintActionResponse(message="Complaint submitted successfully", complaint=complaint)


@api_router.get("/my-complaints", response_model=List[ComplaintResponse])
async def my_complaints(
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.customer_complaints(principal)


@api_router.get("/assigned", response_model=List[ComplaintResponse])
async def assigned_complaints(
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.assigned_complaints(principal)


@api_router.post("/complaints/{complaint_id}/assign", response_model=ComplaintResponse)
async def assign_complaint(
    complaint_id: int,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.assign_complaint(principal, complaint_id)


@api_router.put("/resolve/{complaint_id}", response_model=ComplaintActionResponse)
async def resolve_complaint(
    complaint_id: int,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    complaint = await service.resolve_complaint(principal, complaint_id)
    return ComplaintActionResponse(message="Complaint resolved successfully", complaint=complaint)


@api_router.put("/close/{complaint_id}", response_model=ComplaintActionResponse)
async def close_complaint(
    complaint_id: int,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    complaint = await service.close_complaint(principal, complaint_id)
    return ComplaintActionResponse(message="Complaint closed successfully", complaint=complaint)


@api_router.get("/chat/{complaint_id}", response_model=List[ChatMessageResponse])
async def chat_history(
    complaint_id: int,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.chat_history(principal, complaint_id)


@api_router.post("/chat/{complaint_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def send_chat_message(
    complaint_id: int,
    req: ChatMessageRequest,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.send_message(principal, complaint_id, req.content)


@api_router.put("/status", response_model=AgentStatusResponse)
async def update_online_status(
    req: StatusRequest,
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.set_online_status(principal, req.is_online)


@api_router.get("/performance", response_model=PerformanceResponse)
async def performance_stats(
    period: str = Query(default="all"),
    service_id: Optional[str] = Query(default=None),
    principal: Principal = Depends(get_principal),
    service: SupportService = Depends(get_support_service),
):
    return await service.performance(principal, period, service_id)
