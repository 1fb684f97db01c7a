from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "billingperiod" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "name" VARCHAR(100) NOT NULL UNIQUE,
    "period_type" VARCHAR(9) NOT NULL DEFAULT 'quarterly' /* MONTHLY: monthly\nQUARTERLY: quarterly */,
    "start_date" DATE NOT NULL,
    "end_date" DATE NOT NULL,
    "reading_deadline" DATE NOT NULL,
    "is_official_billing" INT NOT NULL DEFAULT 0,
    "is_billing_enabled" INT NOT NULL DEFAULT 0
) /* A calendar interval over which readings are taken and bills computed. */;
CREATE TABLE IF NOT EXISTS "household" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "household_number" INT NOT NULL UNIQUE,
    "owner_name" VARCHAR(255) NOT NULL,
    "email" VARCHAR(255),
    "ownership_share" VARCHAR(40) NOT NULL DEFAULT 0 /* Andelstal: fraction of cooperative costs carried by the household */,
    "annual_member_fee" VARCHAR(40) /* Agreed yearly fee, for reference only; invoices bill the Membership pricing */,
    "is_active" INT NOT NULL DEFAULT 1
) /* A member household of the cooperative. */;
CREATE TABLE IF NOT EXISTS "invoice" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "invoice_number" VARCHAR(50) NOT NULL UNIQUE,
    "total_utility_costs" VARCHAR(40) NOT NULL,
    "member_fee" VARCHAR(40) NOT NULL DEFAULT 0,
    "shared_costs" VARCHAR(40) NOT NULL DEFAULT 0,
    "total_amount" VARCHAR(40) NOT NULL,
    "due_date" DATE NOT NULL,
    "status" VARCHAR(7) NOT NULL DEFAULT 'pending' /* PENDING: pending\nPAID: paid\nOVERDUE: overdue */,
    "paid_date" DATE,
    "billing_period_id" CHAR(36) NOT NULL REFERENCES "billingperiod" ("id") ON DELETE CASCADE,
    "household_id" CHAR(36) NOT NULL REFERENCES "household" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_invoice_househo_5c3b1e" UNIQUE ("household_id", "billing_period_id")
) /* The payable bill of a household for a billing period. */;
CREATE TABLE IF NOT EXISTS "payment" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "amount" VARCHAR(40) NOT NULL,
    "payment_date" DATE NOT NULL,
    "method" VARCHAR(50) NOT NULL DEFAULT 'unknown',
    "notes" TEXT,
    "invoice_id" CHAR(36) NOT NULL REFERENCES "invoice" ("id") ON DELETE CASCADE
) /* A payment recorded against an invoice. */;
CREATE TABLE IF NOT EXISTS "sharedcost" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "year" INT NOT NULL,
    "quarter" INT NOT NULL,
    "description" VARCHAR(255) NOT NULL,
    "total_amount" VARCHAR(40) NOT NULL,
    "cost_per_household" VARCHAR(40) NOT NULL
) /* A cooperative-wide expense split between active households. */;
CREATE TABLE IF NOT EXISTS "utilityservice" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "name" VARCHAR(100) NOT NULL UNIQUE,
    "unit" VARCHAR(20) NOT NULL DEFAULT '',
    "service_type" VARCHAR(11) NOT NULL DEFAULT 'other' /* WATER: water\nELECTRICITY: electricity\nHEATING: heating\nMEMBERSHIP: membership\nOTHER: other */,
    "requires_readings" INT NOT NULL DEFAULT 1,
    "has_main_meters" INT NOT NULL DEFAULT 0,
    "requires_reconciliation" INT NOT NULL DEFAULT 0
) /* A metered utility (water) or a flat fee (membership). */;
CREATE TABLE IF NOT EXISTS "householdmeter" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "serial" VARCHAR(100),
    "household_id" CHAR(36) NOT NULL REFERENCES "household" ("id") ON DELETE CASCADE,
    "service_id" CHAR(36) NOT NULL REFERENCES "utilityservice" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_householdme_househo_0e9a4d" UNIQUE ("household_id", "service_id")
) /* A household's sub-meter (or fee subscription) for one service. */;
CREATE TABLE IF NOT EXISTS "householdmeterreading" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "value" VARCHAR(40) NOT NULL,
    "reading_date" DATE NOT NULL,
    "raw_consumption" VARCHAR(40),
    "notes" TEXT,
    "billing_period_id" CHAR(36) NOT NULL REFERENCES "billingperiod" ("id") ON DELETE CASCADE,
    "household_meter_id" CHAR(36) NOT NULL REFERENCES "householdmeter" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_householdme_househo_7f21c8" UNIQUE ("household_meter_id", "billing_period_id")
) /* Cumulative reading of a household meter in a billing period. */;
CREATE TABLE IF NOT EXISTS "mainmeter" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "identifier" VARCHAR(100) NOT NULL UNIQUE,
    "service_id" CHAR(36) NOT NULL REFERENCES "utilityservice" ("id") ON DELETE CASCADE
) /* A municipal meter measuring the whole property. */;
CREATE TABLE IF NOT EXISTS "mainmeterreading" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "value" VARCHAR(40) NOT NULL,
    "reading_date" DATE NOT NULL,
    "consumption" VARCHAR(40),
    "notes" TEXT,
    "billing_period_id" CHAR(36) NOT NULL REFERENCES "billingperiod" ("id") ON DELETE CASCADE,
    "meter_id" CHAR(36) NOT NULL REFERENCES "mainmeter" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_mainmeterre_meter_i_3a9d52" UNIQUE ("meter_id", "billing_period_id")
) /* Cumulative reading of a main meter in a billing period. */;
CREATE TABLE IF NOT EXISTS "reconciliation" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "main_meter_total" VARCHAR(40) NOT NULL,
    "household_total" VARCHAR(40) NOT NULL,
    "difference" VARCHAR(40) NOT NULL,
    "active_household_count" INT NOT NULL,
    "adjustment_per_household" VARCHAR(40) NOT NULL,
    "split_mode" VARCHAR(12) NOT NULL DEFAULT 'equal' /* EQUAL: equal\nPROPORTIONAL: proportional */,
    "billing_period_id" CHAR(36) NOT NULL REFERENCES "billingperiod" ("id") ON DELETE CASCADE,
    "service_id" CHAR(36) NOT NULL REFERENCES "utilityservice" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_reconciliat_service_b41e07" UNIQUE ("service_id", "billing_period_id")
) /* Gap between main meters and summed household meters for one period. */;
CREATE TABLE IF NOT EXISTS "utilitybilling" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "raw_consumption" VARCHAR(40) NOT NULL DEFAULT 0,
    "consumption_source" VARCHAR(8) NOT NULL DEFAULT 'derived' /* DERIVED: derived\nOVERRIDE: override\nINITIAL: initial\nFLAT: flat */,
    "reconciliation_adjustment" VARCHAR(40) NOT NULL DEFAULT 0,
    "adjusted_consumption" VARCHAR(40) NOT NULL DEFAULT 0,
    "cost_per_unit" VARCHAR(40) NOT NULL DEFAULT 0,
    "consumption_cost" VARCHAR(40) NOT NULL DEFAULT 0,
    "fixed_fee_share" VARCHAR(40) NOT NULL DEFAULT 0,
    "total_utility_cost" VARCHAR(40) NOT NULL,
    "billing_period_id" CHAR(36) NOT NULL REFERENCES "billingperiod" ("id") ON DELETE CASCADE,
    "household_id" CHAR(36) NOT NULL REFERENCES "household" ("id") ON DELETE CASCADE,
    "reconciliation_id" CHAR(36) REFERENCES "reconciliation" ("id") ON DELETE SET NULL,
    "service_id" CHAR(36) NOT NULL REFERENCES "utilityservice" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_utilitybill_househo_92c6fa" UNIQUE ("household_id", "service_id", "billing_period_id")
) /* One billed service for one household in one period. */;
CREATE TABLE IF NOT EXISTS "utilitypricing" (
    "id" CHAR(36) NOT NULL PRIMARY KEY,
    "created_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "effective_date" DATE NOT NULL,
    "price_per_unit" VARCHAR(40) NOT NULL DEFAULT 0,
    "fixed_fee_per_household" VARCHAR(40) NOT NULL DEFAULT 0,
    "service_id" CHAR(36) NOT NULL REFERENCES "utilityservice" ("id") ON DELETE CASCADE,
    CONSTRAINT "uid_utilitypric_service_5d08e3" UNIQUE ("service_id", "effective_date")
) /* A price record for a service, valid from its effective date onwards. */;
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSON NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
