from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_account_directory
from schemas.account import (
    AccountActionResponse,
    AccountCreateRequest,
    AccountListResponse,
    PasswordResetResponse,
)
from services.accounts import AccountDirectory, AccountError


logger = logging.getLogger(__name__)


router = APIRouter()


def _http_error(exc: AccountError) -> HTTPException:
    if exc.message:
        return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": exc.message})
    return HTTPException(status_code=exc.status_code, detail=exc.code)


@router.get("/", response_model=AccountListResponse)
def list_accounts(directory: AccountDirectory = Depends(get_account_directory)) -> AccountListResponse:
    try:
        accounts = directory.list_accounts()
    except AccountError as exc:
        raise _http_error(exc)
    return AccountListResponse(source=directory.source, accounts=accounts)


@router.post("/", response_model=AccountActionResponse)
def create_account(
    payload: AccountCreateRequest,
    directory: AccountDirectory = Depends(get_account_directory),
) -> AccountActionResponse:
    try:
        account = directory.create_account(email=payload.email, password=payload.password)
    except AccountError as exc:
        raise _http_error(exc)
    logger.info("Account created email=%r source=%s", payload.email, directory.source)
    return AccountActionResponse(ok=True, source=directory.source, message="Account created", account=account)


@router.post("/{account_id}/approve", response_model=AccountActionResponse)
def approve_account(
    account_id: str,
    directory: AccountDirectory = Depends(get_account_directory),
) -> AccountActionResponse:
    try:
        account = directory.approve_account(account_id)
    except AccountError as exc:
        raise _http_error(exc)
    return AccountActionResponse(ok=True, source=directory.source, message="Account approved", account=account)


@router.post("/{account_id}/revoke", response_model=AccountActionResponse)
def revoke_account(
    account_id: str,
    directory: AccountDirectory = Depends(get_account_directory),
) -> AccountActionResponse:
    try:
        account = directory.revoke_account(account_id)
    except AccountError as exc:
        raise _http_error(exc)
    return AccountActionResponse(ok=True, source=directory.source, message="Approval revoked", account=account)


@router.delete("/{account_id}", response_model=AccountActionResponse)
def delete_account(
    account_id: str,
    directory: AccountDirectory = Depends(get_account_directory),
) -> AccountActionResponse:
    try:
        directory.delete_account(account_id)
    except AccountError as exc:
        raise _http_error(exc)
    logger.info("Account %s deleted source=%s", account_id, directory.source)
    return AccountActionResponse(ok=True, source=directory.source, message="Account deleted")


@router.post("/{account_id}/reset-password", response_model=PasswordResetResponse)
def reset_password(
    account_id: str,
    directory: AccountDirectory = Depends(get_account_directory),
) -> PasswordResetResponse:
    try:
        account, new_password = directory.reset_password(account_id)
    except AccountError as exc:
        raise _http_error(exc)
    logger.info("Password reset for account %s source=%s", account_id, directory.source)
    return PasswordResetResponse(
        ok=True,
        source=directory.source,
        message="Password reset",
        account=account,
        new_password=new_password,
    )
