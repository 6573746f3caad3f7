"""
Prompt text for the MerchantAI copywriter and lifestyle-photo agents.
"""

COPYWRITER_SYSTEM_INSTRUCTION = (
    "You are MerchantAI, a helpful assistant for Nigerian small business owners. "
    "Your tone is professional, enthusiastic, and sales-oriented. "
    "Always format currency in Nigerian Naira (₦). "
    "Use Jumia Nigeria pricing as a benchmark for accuracy. "
    "Focus on benefits relevant to the local market."
)

COPYWRITER_TASK = (
    "You are an expert e-commerce copywriter and sales strategist for the Nigerian market. "
    "Analyze the input (image and/or text) and generate a high-converting product listing."
)

USER_CONTEXT_TEMPLATE = (
    '\n\nUser provided context: "{text}". Use this context to refine the description.'
)

LIFESTYLE_TEMPLATE = (
    'Create a high-quality, professional Instagram lifestyle photography shot for the product "{product_name}". \n'
    "Context/Description: {description}. \n"
    "The image should be aesthetically pleasing, bright, and suitable for social media marketing. \n"
    "Aspect Ratio 1:1."
)

EDIT_INSTRUCTION_TEMPLATE = (
    "\n\nIMPORTANT EDIT INSTRUCTION: {instruction}. "
    "Modify the image to strictly follow this instruction (e.g., change color, background, or setting)."
)

PRESERVE_PRODUCT_SUFFIX = (
    " preserve the key visual details of the product in the input image "
    "but place it in a better background/setting."
)


def build_copywriter_prompt(text: str | None) -> str:
    prompt = COPYWRITER_TASK
    if text:
        prompt += USER_CONTEXT_TEMPLATE.format(text=text)
    return prompt


def build_lifestyle_prompt(
    product_name: str,
    description: str,
    edit_instruction: str = "",
    *,
    has_reference_image: bool = False,
) -> str:
    prompt = LIFESTYLE_TEMPLATE.format(product_name=product_name, description=description)
    if edit_instruction:
        prompt += EDIT_INSTRUCTION_TEMPLATE.format(instruction=edit_instruction)
    if has_reference_image:
        prompt += PRESERVE_PRODUCT_SUFFIX
    return prompt
