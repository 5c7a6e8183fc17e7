def seed_group(db, member_ids, name="Flatmates", group_id=None, inactive=()):
    """A group created by the first member, with every id as a member."""
    group = db.seed("groups", {
        "id": group_id or f"group-{name.lower()}",
        "name": name,
        "join_code": f"CODE{len(db.rows('groups')):04d}",
        "created_by": member_ids[0],
        "is_main_group": True,
    })[0]
    for index, user_id in enumerate(member_ids):
        db.seed("group_members", {
            "group_id": group["id"],
            "user_id": user_id,
            "role": "admin" if index == 0 else "member",
            "is_active": user_id not in inactive,
        })
    return group


def seed_profile(db, user_id, display_name=None, full_name=None):
    return db.seed("profiles", {"id": user_id, "display_name": display_name, "full_name": full_name})[0]
