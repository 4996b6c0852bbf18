"""Pydantic schemas for the load-balancer attachment endpoints."""

from pydantic import BaseModel, Field


class CreateAttachmentRequest(BaseModel):
    """Request body for POST /lb-attachments."""

    lb_name: str = Field(..., min_length=1, examples=["lb1"])
    instance_name: str = Field(..., min_length=1, examples=["i1"])


class AttachmentResponse(BaseModel):
    id: str = Field(..., examples=["lb1,i1"], description="LB_NAME,INSTANCE_NAME")
    lb_name: str
    instance_name: str
