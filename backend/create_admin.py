import asyncio
import getpass

from sqlalchemy import select, update

from sellgadgetz.db.database import AsyncSessionLocal, init_db, seed_admin
from sellgadgetz.db.models.user import User

async def create_superuser():
    """
    관리자 계정을 만들거나, 이미 있는 유저에게 관리자 권한을 부여합니다.
    관리자는 이후 생성되는 support 방에 자동으로 참여합니다.
    """
    await init_db()

    username = input("Enter Admin Username: ")
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.username == username))
        existing = result.scalar_one_or_none()

        if existing:
            if existing.is_admin:
                print(f"User {username} is already an admin.")
                return
            await session.execute(update(User).where(User.id == existing.id).values(is_admin=True))
            await session.commit()
            print(f"Granted admin privileges to '{username}'.")
            return

    password = getpass.getpass("Enter Admin Password: ")
    email = input("Enter Admin Email: ")
    await seed_admin(username, password, email)
    print(f"Superuser '{username}' created successfully!")

if __name__ == "__main__":
    asyncio.run(create_superuser())
