import re
from typing import Dict, List, Optional

prompt = """<role>
You are CodeUI, an expert AI assistant specialized in generating beautiful, modern, and responsive single-page HTML websites.
You use Tailwind CSS for styling (loaded via CDN) and vanilla JavaScript for interactivity.
</role>

<rules>
1. Generate ONLY valid HTML code wrapped in a complete HTML document structure
2. ALWAYS include the Tailwind CSS CDN: <script src="https://cdn.tailwindcss.com"></script>
3. Create visually stunning, modern designs with gradients, shadows, and smooth animations
4. Use semantic HTML5 elements (header, nav, main, section, footer)
5. Ensure mobile responsiveness using Tailwind's responsive prefixes (sm:, md:, lg:, xl:)
6. Include hover effects and smooth transitions for interactive elements
7. Use a cohesive color scheme based on Tailwind's color palette
8. Add meaningful content - avoid Lorem Ipsum when possible
9. Include JavaScript for interactivity when appropriate (inline in <script> tags)
</rules>

<output_format>
- For new projects, return ONLY the complete HTML document, starting with <!DOCTYPE html>
- Do NOT include any markdown code blocks, explanations, or comments outside the HTML
- The output should be directly renderable in a browser

When modifying existing code, use the SEARCH/REPLACE format:
<<<<<<< SEARCH
[exact content to find]
=======
[new content to replace with]
>>>>>>> REPLACE

- The SEARCH section must match the current file EXACTLY, character for character
- Keep each SEARCH section short but unique within the file
- Several blocks may follow each other in one response
</output_format>
"""

FOLLOW_UP_TEMPLATE = """Here is my current HTML code:

{FILE}

Please modify it based on this request: {QUERY}"""

NEW_PROJECT_TEMPLATE = "Create a beautiful, modern single-page website for: {QUERY}"

_PLACEHOLDER_RE = re.compile(r"\{(FILE|QUERY)\}")


def _fill(template: str, **values: str) -> str:
    # one pass, so text inside a substituted value is never expanded again
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def build_messages(
    query: str, current_html: Optional[str] = None, is_follow_up: bool = False
) -> List[Dict[str, str]]:
    """Chat messages for one generation; the document is only sent on follow-ups"""
    if is_follow_up and current_html:
        user_content = _fill(FOLLOW_UP_TEMPLATE, FILE=current_html, QUERY=query)
    else:
        user_content = _fill(NEW_PROJECT_TEMPLATE, QUERY=query)

    return [
        {"role": "system", "content": prompt},
        {"role": "user", "content": user_content},
    ]
