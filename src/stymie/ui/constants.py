"""Shared UI constants for the stymie command line."""

# Extra arguments per editor so nothing of a decrypted secret outlives the session.
EDITOR_ARGS = {
    "vim": [
        "-c", ":set nobackup",
        "-c", ":set nowritebackup",
        "-c", ":set noswapfile",
        "-c", ":set noundofile",
        # Erases all session information when the file is closed.
        "-c", ":set bufhidden=wipe",
        # Fold indented lines when the file is opened.
        "-c", ":set foldmethod=indent",
        "-c", ":set foldtext=''",
        "-c", ":set viminfo=",
    ],
    "nvim": [
        "-n",
        "-i", "NONE",
        "-c", ":set nobackup nowritebackup noundofile",
        "-c", ":set bufhidden=wipe",
    ],
    "nano": ["--nohelp", "--restricted"],
}

EXIT_OK = 0
EXIT_ERROR = 1

YES_ANSWERS = ("y", "yes")
