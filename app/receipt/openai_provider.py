import base64
import logging

from agents import Agent, ModelSettings, Runner
from pydantic import BaseModel, Field

from app.errors import ReceiptError, UpstreamError
from app.receipt.base import Deadline, ParsedReceipt, ReceiptImage, TextSourceResult

logger = logging.getLogger("dimdim")

INSTRUCTIONS = """\
You read Brazilian purchase receipts and payment proofs. Reply ONLY with the requested JSON.

Rules:
- merchant: the store or payee name as printed (not the CNPJ, not an address). null if not visible.
- amount: the total paid, formatted like 123,45 (comma decimal separator, exactly two decimals, no currency symbol, no thousands separator). null if not visible.
- dateStr: the purchase date formatted YYYY-MM-DD. Receipts print dates as DD/MM/YYYY. null if not visible.
- Never guess: use null for anything you cannot read."""


class ReceiptFieldsOutput(BaseModel):
    merchant: str | None
    amount: str | None = Field(description="Format 123,45")
    date_str: str | None = Field(alias="dateStr", description="Format YYYY-MM-DD")

    model_config = {"populate_by_name": True}


def build_agent(model: str) -> Agent:
    return Agent(
        name="Receipt Reader",
        instructions=INSTRUCTIONS,
        model=model,
        model_settings=ModelSettings(temperature=0),
        output_type=ReceiptFieldsOutput,
    )


class OpenAIReceiptReader:
    """Receipt fields straight from an OpenAI vision model via the Agents SDK."""

    def __init__(self, model: str = "gpt-4o-mini"):
        self.agent = build_agent(model)

    async def read(self, image: ReceiptImage, deadline: Deadline) -> TextSourceResult:
        b64_image = base64.b64encode(image.content).decode("utf-8")
        media_type = image.content_type or "image/jpeg"

        try:
            result = await deadline.run(
                Runner.run(
                    self.agent,
                    input=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "input_text", "text": "Extract merchant, amount (123,45) and dateStr (YYYY-MM-DD)."},
                                {"type": "input_image", "image_url": f"data:{media_type};base64,{b64_image}"},
                            ],
                        }
                    ],
                )
            )
        except ReceiptError:
            raise
        except Exception as e:
            logger.error(f"Receipt model call failed: {e}", exc_info=True)
            raise UpstreamError(str(e) or "Receipt model call failed")

        output = result.final_output if result is not None else None
        if not output:
            raise UpstreamError("No model output")

        return TextSourceResult(
            fields=ParsedReceipt(merchant=output.merchant, amount=output.amount, date_str=output.date_str)
        )
