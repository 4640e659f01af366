from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from reprocessor.domain import JobStatus

# Transitional executor labels that are still waiting to run.
QUEUED_ALIASES = {"holding", "preparing", "queued"}


class LogicOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "Id"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "Logic_Name__c"))
    description: str | None = Field(default=None, validation_alias=AliasChoices("description", "Description__c"))
    trigger_context: str | None = Field(
        default=None, validation_alias=AliasChoices("trigger_context", "Trigger_Context__c")
    )
    enabled: bool = Field(default=True, validation_alias=AliasChoices("enabled", "Is_Enabled__c"))
    required_fields: str | None = Field(
        default=None, validation_alias=AliasChoices("required_fields", "Required_Input_Fields__c")
    )
    handler_class: str | None = Field(
        default=None, validation_alias=AliasChoices("handler_class", "Trigger_Handler_Class_Name__c")
    )


class LaunchJobRequest(BaseModel):
    target_type: str
    trigger_context: str
    logic_ids: list[str]
    filter: str = ""
    fields: list[str] = Field(default_factory=list)
    batch_size: int = Field(default=100, ge=1)


class JobStatusSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: JobStatus = Field(validation_alias=AliasChoices("status", "Status"))
    percent_complete: float = Field(default=0, validation_alias=AliasChoices("percent_complete", "PercentComplete"))
    items_processed: int = Field(default=0, validation_alias=AliasChoices("items_processed", "JobItemsProcessed"))
    total_items: int = Field(default=0, validation_alias=AliasChoices("total_items", "TotalJobItems"))
    error_count: int = Field(default=0, validation_alias=AliasChoices("error_count", "NumberOfErrors"))
    extended_status: str = Field(default="", validation_alias=AliasChoices("extended_status", "ExtendedStatus"))

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in QUEUED_ALIASES:
                return JobStatus.QUEUED
            for member in JobStatus:
                if member.value.lower() == lowered:
                    return member
        return value

    @field_validator("percent_complete", "items_processed", "total_items", "error_count", mode="before")
    @classmethod
    def _zero_when_missing(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("extended_status", mode="before")
    @classmethod
    def _blank_when_missing(cls, value: Any) -> Any:
        return "" if value is None else value


class TriggerLogEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    related_record_ids: str | None = Field(
        default=None, validation_alias=AliasChoices("related_record_ids", "Related_Record_Ids__c")
    )
    timestamp: str | None = Field(default=None, validation_alias=AliasChoices("timestamp", "Timestamp__c"))
    message: str | None = Field(default=None, validation_alias=AliasChoices("message", "Message__c"))
    context: str | None = Field(default=None, validation_alias=AliasChoices("context", "Context__c"))
    trigger_name: str | None = Field(default=None, validation_alias=AliasChoices("trigger_name", "Trigger_Name__c"))
    sobject_type: str | None = Field(default=None, validation_alias=AliasChoices("sobject_type", "SObject_Type__c"))


class TriggerLogRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(validation_alias=AliasChoices("id", "Id"))
    created_date: str | None = Field(default=None, validation_alias=AliasChoices("created_date", "CreatedDate"))
    trigger_name: str | None = Field(default=None, validation_alias=AliasChoices("trigger_name", "Trigger_Name__c"))
    context: str | None = Field(default=None, validation_alias=AliasChoices("context", "Context__c"))
    message: str | None = Field(default=None, validation_alias=AliasChoices("message", "Message__c"))
    user: str | None = Field(default=None, validation_alias=AliasChoices("user", "User__c"))
    sobject_type: str | None = Field(default=None, validation_alias=AliasChoices("sobject_type", "SObject_Type__c"))
    related_record_ids: str | None = Field(
        default=None, validation_alias=AliasChoices("related_record_ids", "Related_Record_Ids__c")
    )
