from stymie.ui.constants import YES_ANSWERS


def confirm(message: str = "Are you sure?") -> bool:
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in YES_ANSWERS
