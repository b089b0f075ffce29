from pulse.services.llm.client import LLMClient


def get_llm_client() -> LLMClient:
    return LLMClient()
