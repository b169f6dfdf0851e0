import os


def readfile(filename: str) -> bytes:
    with open(filename, "rb") as f:
        return f.read()


def writefile(filename: str, data: bytes) -> None:
    with open(filename, "wb") as fo:
        fo.write(data)


def copy(filefrom: str, fileto: str) -> None:
    with open(filefrom, "rb") as fi:
        with open(fileto, "wb") as fo:
            while True:
                block = fi.read(4096)
                if not block: break
                fo.write(block)


def make_executable(filename: str) -> None:
    mode = os.stat(filename).st_mode
    os.chmod(filename, mode | 0o111)
