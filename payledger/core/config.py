from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PAYLEDGER_")

    APP_NAME: str = Field("payledger", description="Root logger name")
    LOG_LEVEL: str = Field("INFO", description="Logging level for the package logger")
    LOG_PATH: str = Field("./data/logs", description="Directory for rotating log files")

    # QuickBooks company files
    CHARITY_REALM_ID: str = Field("123145825016867", description="Charity company file")
    ENTERPRISES_REALM_ID: str = Field("9130350604308576", description="Enterprises (shop) company file")

    # Pension bills are payable to the pension provider, outside the scope of VAT
    PENSION_VENDOR_REF: str = Field("357", description="Pension provider vendor id")
    NOVAT_TAX_CODE: str = Field("20", description="No-VAT tax code for bill lines")

    # Payslips whose deductions exceed this share of gross pay are flagged
    HIGH_DEDUCTION_PERCENT: float = 50.0


settings = Settings()
