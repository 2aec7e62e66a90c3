"""001 – Payroll schema: employees, shifts, attendance, leave, salary.

Revision ID: 001_payroll_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_payroll_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── 1. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code   VARCHAR(50)  NOT NULL UNIQUE,
            name            VARCHAR(200) NOT NULL,
            department      VARCHAR(100),
            designation     VARCHAR(100),
            base_salary     NUMERIC(12,2),
            shift_name      VARCHAR(100),
            weekly_off_day  INTEGER NOT NULL DEFAULT 6,
            joining_date    DATE,
            exit_date       DATE,
            is_active       BOOLEAN NOT NULL DEFAULT true,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    # ── 2. shifts ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE shifts (
            id                      UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                    VARCHAR(100) NOT NULL UNIQUE,
            start_time              TIME,
            end_time                TIME,
            is_split_shift          BOOLEAN NOT NULL DEFAULT false,
            slot1_start             TIME,
            slot1_end               TIME,
            slot2_start             TIME,
            slot2_end               TIME,
            work_hours              NUMERIC(4,2),
            late_threshold_minutes  INTEGER NOT NULL DEFAULT 10,
            created_at              TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at              TIMESTAMPTZ,
            CONSTRAINT ck_shift_work_hours CHECK (work_hours > 0 AND work_hours <= 24),
            CONSTRAINT ck_shift_late_threshold CHECK (late_threshold_minutes >= 0)
        )
    """)

    op.execute("""
        CREATE TABLE employee_shift_assignments (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code   VARCHAR(50)  NOT NULL,
            shift_name      VARCHAR(100) NOT NULL,
            from_date       DATE NOT NULL,
            to_date         DATE NOT NULL,
            created_by      VARCHAR(100),
            created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_shift_assignment_range CHECK (from_date <= to_date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_shift_assignment_emp_range "
        "ON employee_shift_assignments (employee_code, from_date, to_date)"
    )

    # ── 3. attendance inputs ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE raw_punch_logs (
            id              BIGSERIAL PRIMARY KEY,
            employee_code   VARCHAR(50) NOT NULL,
            punched_at      TIMESTAMP   NOT NULL,
            direction       VARCHAR(10),
            device_id       VARCHAR(100)
        )
    """)
    op.execute(
        "CREATE INDEX ix_raw_punch_logs_emp_time ON raw_punch_logs (employee_code, punched_at)"
    )

    op.execute("""
        CREATE TABLE holidays (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            holiday_date    DATE NOT NULL UNIQUE,
            name            VARCHAR(200) NOT NULL
        )
    """)

    op.execute("""
        CREATE TABLE attendance_regularizations (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50) NOT NULL,
            attendance_date     DATE NOT NULL,
            original_status     VARCHAR(20) NOT NULL,
            regularized_status  VARCHAR(20) NOT NULL,
            reason              TEXT,
            requested_by        VARCHAR(100),
            approved_by         VARCHAR(100),
            created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_regularization_emp_date UNIQUE (employee_code, attendance_date),
            CONSTRAINT ck_regularization_original
                CHECK (original_status IN ('absent', 'half-day')),
            CONSTRAINT ck_regularization_status
                CHECK (regularized_status IN ('half-day', 'full-day'))
        )
    """)
    op.execute(
        "CREATE INDEX ix_attendance_regularizations_employee_code "
        "ON attendance_regularizations (employee_code)"
    )

    # ── 4. leave ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_entitlements (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50) NOT NULL,
            leave_year          INTEGER NOT NULL,
            allowed_leaves      NUMERIC(5,1) NOT NULL DEFAULT 0,
            used_paid_leaves    NUMERIC(5,1) NOT NULL DEFAULT 0,
            used_casual_leaves  NUMERIC(5,1) NOT NULL DEFAULT 0,
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_leave_entitlement UNIQUE (employee_code, leave_year),
            CONSTRAINT ck_entitlement_used_paid CHECK (used_paid_leaves >= 0),
            CONSTRAINT ck_entitlement_used_casual CHECK (used_casual_leaves >= 0)
        )
    """)

    op.execute("""
        CREATE TABLE monthly_leave_usage (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50) NOT NULL,
            month               VARCHAR(7)  NOT NULL,
            paid_leave_dates    JSONB NOT NULL DEFAULT '[]',
            casual_leave_dates  JSONB NOT NULL DEFAULT '[]',
            paid_leave_days     NUMERIC(5,1) NOT NULL DEFAULT 0,
            casual_leave_days   NUMERIC(5,1) NOT NULL DEFAULT 0,
            updated_by          VARCHAR(100),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_monthly_leave_usage UNIQUE (employee_code, month)
        )
    """)

    # ── 5. salary ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE monthly_salaries (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50) NOT NULL,
            month               VARCHAR(7)  NOT NULL,
            base_salary         NUMERIC(12,2) NOT NULL,
            gross_salary        NUMERIC(12,2) NOT NULL,
            net_salary          NUMERIC(12,2) NOT NULL,
            per_day_rate        NUMERIC(12,2) NOT NULL,
            paid_days           NUMERIC(5,1)  NOT NULL,
            absent_days         NUMERIC(5,1)  NOT NULL,
            leave_days          NUMERIC(5,1)  NOT NULL,
            total_deductions    NUMERIC(12,2) NOT NULL,
            total_additions     NUMERIC(12,2) NOT NULL,
            total_worked_hours  NUMERIC(7,2)  NOT NULL,
            overtime_hours      NUMERIC(7,2)  NOT NULL,
            overtime_amount     NUMERIC(12,2) NOT NULL,
            tds_deduction       NUMERIC(12,2) NOT NULL,
            professional_tax    NUMERIC(12,2) NOT NULL,
            incentive_amount    NUMERIC(12,2) NOT NULL,
            is_held             BOOLEAN NOT NULL DEFAULT false,
            hold_reason         TEXT,
            breakdown_json      TEXT NOT NULL,
            status              SMALLINT NOT NULL DEFAULT 0,
            calculated_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
            calculated_by       VARCHAR(100),
            finalized_at        TIMESTAMPTZ,
            finalized_by        VARCHAR(100),
            CONSTRAINT uq_monthly_salary UNIQUE (employee_code, month),
            CONSTRAINT ck_monthly_salary_status CHECK (status IN (0, 1))
        )
    """)
    op.execute(
        "CREATE INDEX ix_monthly_salary_month_status ON monthly_salaries (month, status)"
    )

    op.execute("""
        CREATE TABLE salary_adjustments (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50)  NOT NULL,
            month               VARCHAR(7)   NOT NULL,
            adjustment_type     VARCHAR(20)  NOT NULL,
            category            VARCHAR(100) NOT NULL,
            amount              NUMERIC(12,2) NOT NULL,
            description         TEXT,
            created_by          VARCHAR(100),
            created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_salary_adjustment
                UNIQUE (employee_code, month, adjustment_type, category),
            CONSTRAINT ck_salary_adjustment_amount CHECK (amount >= 0),
            CONSTRAINT ck_salary_adjustment_type
                CHECK (adjustment_type IN ('DEDUCTION', 'ADDITION'))
        )
    """)

    op.execute("""
        CREATE TABLE salary_holds (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code   VARCHAR(50) NOT NULL,
            month           VARCHAR(7)  NOT NULL,
            hold_type       VARCHAR(10) NOT NULL DEFAULT 'MANUAL',
            reason          TEXT,
            is_released     BOOLEAN NOT NULL DEFAULT false,
            released_at     TIMESTAMPTZ,
            action_by       VARCHAR(100),
            created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_salary_hold_type CHECK (hold_type IN ('MANUAL', 'AUTO'))
        )
    """)
    # One unreleased hold per employee and month
    op.execute(
        "CREATE UNIQUE INDEX uq_salary_hold_active ON salary_holds (employee_code, month) "
        "WHERE is_released = false"
    )

    op.execute("""
        CREATE TABLE monthly_overtime (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code       VARCHAR(50) NOT NULL,
            month               VARCHAR(7)  NOT NULL,
            is_overtime_enabled BOOLEAN NOT NULL DEFAULT false,
            updated_by          VARCHAR(100),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_monthly_overtime UNIQUE (employee_code, month)
        )
    """)

    # ── Seed: default shift ───────────────────────────────────────────────
    op.execute("""
        INSERT INTO shifts (name, start_time, end_time, work_hours, late_threshold_minutes)
        VALUES ('D', '10:00', '19:00', 9.00, 10)
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "monthly_overtime",
        "salary_holds",
        "salary_adjustments",
        "monthly_salaries",
        "monthly_leave_usage",
        "leave_entitlements",
        "attendance_regularizations",
        "holidays",
        "raw_punch_logs",
        "employee_shift_assignments",
        "shifts",
        "employees",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
