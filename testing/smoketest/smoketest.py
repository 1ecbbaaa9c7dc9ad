from phpunserialize import MixedArray, loads


def main() -> None:
    msg = "Don't let the smoke out!"
    msg_out = loads(f's:{len(msg.encode())}:"{msg}";', encoding="utf-8")
    if msg != msg_out:
        raise AssertionError("Smoke test failed")

    cyclic = loads("a:1:{i:0;R:1;}")
    if not (isinstance(cyclic, MixedArray) and cyclic[0] is cyclic):
        raise AssertionError("Smoke test failed: self-reference not resolved")
    print(msg_out)


if __name__ == "__main__":
    main()
