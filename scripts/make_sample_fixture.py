#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from pathlib import Path


LOGIC_OPTIONS = [
    {
        "Id": "m00000000000001",
        "Logic_Name__c": "Normalize Phone",
        "Description__c": "Formats phone numbers to E.164",
        "Trigger_Context__c": "before_insert",
        "Is_Enabled__c": True,
        "Required_Input_Fields__c": "Phone, BillingCountry",
        "Trigger_Handler_Class_Name__c": "AccountPhoneHandler",
        "target_type": "Account",
    },
    {
        "Id": "m00000000000002",
        "Logic_Name__c": "Assign Owner",
        "Description__c": "Routes records to the owning team",
        "Trigger_Context__c": "before_insert",
        "Is_Enabled__c": True,
        "Required_Input_Fields__c": "OwnerId, Industry",
        "Trigger_Handler_Class_Name__c": "AccountOwnerHandler",
        "target_type": "Account",
    },
    {
        "Id": "m00000000000003",
        "Logic_Name__c": "Score Lead",
        "Description__c": "Recomputes the lead score",
        "Trigger_Context__c": "after_update",
        "Is_Enabled__c": True,
        "Required_Input_Fields__c": "Email, LeadSource",
        "Trigger_Handler_Class_Name__c": "LeadScoreHandler",
        "target_type": "Lead",
    },
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a JSON fixture for the in-memory executor")
    parser.add_argument("--output", required=True, help="Output file path (.json)")
    parser.add_argument("--accounts", type=int, default=25, help="Number of Account records")
    parser.add_argument("--leads", type=int, default=5, help="Number of Lead records")
    args = parser.parse_args()

    accounts = [
        {
            "Id": f"001{index:012d}",
            "Name": f"Account {index}",
            "CreatedDate": f"2024-01-{(index % 28) + 1:02d}T09:00:00Z",
            "Industry": "Banking" if index % 2 else "Retail",
        }
        for index in range(1, args.accounts + 1)
    ]
    leads = [
        {
            "Id": f"00Q{index:012d}",
            "Name": f"Lead {index}",
            "CreatedDate": f"2024-02-{(index % 28) + 1:02d}T09:00:00Z",
            "Email": f"lead{index}@example.com",
        }
        for index in range(1, args.leads + 1)
    ]
    trigger_logs = [
        {
            "Id": f"a01{index:012d}",
            "CreatedDate": f"2024-03-{index:02d}T10:00:00Z",
            "Trigger_Name__c": "AccountTrigger",
            "Context__c": "before_insert",
            "User__c": "integration@example.com",
            "SObject_Type__c": "Account",
            "Related_Record_Ids__c": account["Id"],
            "Message__c": "\n".join(
                [
                    "[START] AccountTrigger",
                    f"Processing {account['Id']}",
                    "[SUCCESS] Normalize Phone",
                    "[END] AccountTrigger",
                ]
            ),
        }
        for index, account in enumerate(accounts[:3], start=1)
    ]

    fixture = {
        "records": {"Account": accounts, "Lead": leads},
        "logic_options": LOGIC_OPTIONS,
        "trigger_logs": trigger_logs,
        "logging_enabled": True,
    }

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(fixture, indent=2), encoding="utf-8")

    print(f"Fixture written: {output}")


if __name__ == "__main__":
    main()
