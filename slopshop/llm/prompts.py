import hashlib

TOOL_INSTRUCTIONS_V1 = """

AVAILABLE TOOLS:
Put each tool call on its own line, exactly in the format shown.

1. RUN_COMMAND: <command>
   Run a shell command in the repository root.
   Example: RUN_COMMAND: git status

2. READ_FILE: <path>
   Read a file. Relative paths start at the repository root.
   Example: READ_FILE: README.md

3. LIST_DIR: <directory>
   List a directory with entry sizes.
   Example: LIST_DIR: src/

4. TEST_COMMAND: <command>
   Check whether a command succeeds.
   Example: TEST_COMMAND: python3 --version

5. SEARCH_FILES: <pattern> <directory>
   Find text files under a directory that contain the pattern.
   Example: SEARCH_FILES: "def main" .

6. GENERATE_DIFF: <description of changes>
   Ask for a unified diff implementing the description.
   Example: GENERATE_DIFF: Add error handling to the config loader

7. APPLY_DIFF: <unified diff>
   Apply a unified diff. Either inline, using \\n between lines:
   Example: APPLY_DIFF: --- a/notes.txt\\n+++ b/notes.txt\\n@@ -1,1 +1,2 @@\\n first line\\n+second line
   or as a block that ends with END_DIFF on its own line:
   APPLY_DIFF:
   --- a/notes.txt
   +++ b/notes.txt
   @@ -1,1 +1,2 @@
    first line
   +second line
   END_DIFF

8. CREATE_FILE: <path>
   Create a file. The lines that follow are its content, up to END_FILE on its own line.
   Example:
   CREATE_FILE: docs/USAGE.md
   # Usage

   Run the tool from the repository root.
   END_FILE

RULES:
- Use the tools to do the work instead of describing what you would do.
- Look before you change anything: READ_FILE, LIST_DIR and SEARCH_FILES first.
- Line numbers in diffs must match the current file content.
- Never put a tool call in the middle of other text on the same line.

User request: """

DIFF_PROMPT_TEMPLATE = (
    "Based on this description: '{description}', generate a unified diff that "
    "implements the requested changes. Only output the unified diff format, no "
    "explanations. The diff should be in the format:\n"
    "--- a/filename\n"
    "+++ b/filename\n"
    "@@ -line,count +line,count @@\n"
    " unchanged line\n"
    "-removed line\n"
    "+added line\n\n"
    "Description: {description}"
)


def build_prompt(prompt: str, context: str = "", tools_enabled: bool = False) -> str:
    full_prompt = f"{context}\n\nUser Question: {prompt}"
    if tools_enabled:
        full_prompt = full_prompt + TOOL_INSTRUCTIONS_V1 + prompt
    return full_prompt


def build_diff_prompt(description: str) -> str:
    return DIFF_PROMPT_TEMPLATE.format(description=description)


def get_prompt_version() -> str:
    digest = hashlib.sha256(TOOL_INSTRUCTIONS_V1.encode("utf-8")).hexdigest()[:12]
    return f"tools_v1@{digest}"
